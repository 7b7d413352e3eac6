"""
Proof Service

Registers, edits and removes proofs for the signed-in competitor. Every write
goes through the mutation pattern: one optional photo upload, then exactly one
table write.
"""

import os
import uuid
from typing import Any, Dict, Optional, Tuple

from verao_fitness.core.cache import QueryKeys
from verao_fitness.core.config import settings
from verao_fitness.core.context import AppContext
from verao_fitness.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    RemoteWriteError,
    UploadError,
    ValidationError,
)
from verao_fitness.core.mutations import run_mutation
from verao_fitness.core.notifications import Notifier
from verao_fitness.models.definitions import EventCategory, PointEvent, find_event
from verao_fitness.services.logger import logger
from verao_fitness.services.media import PhotoUpload, validate_photo

# Views that show proofs or values derived from them
PROOF_DEPENDENT_QUERIES = (
    QueryKeys.RECENT_PROOFS,
    QueryKeys.COMPETITORS,
    QueryKeys.PROOFS,
    QueryKeys.WEEKLY_LEADERBOARD,
    QueryKeys.HALL_OF_FAME,
)


def resolve_event(category: EventCategory, value: str) -> PointEvent:
    event = find_event(category, value)
    if event is None:
        raise ValidationError("Invalid event for this category.", field="event")
    return event


class ProofService:
    """Service for proof submissions"""

    def __init__(self, context: AppContext):
        self.context = context
        self.gateway = context.gateway

    def _store_photo(self, photo: PhotoUpload, upsert: bool) -> Tuple[str, str]:
        """Upload ``photo`` and return its storage path and public URL."""
        validate_photo(photo)
        bucket = settings.PROOF_PHOTOS_BUCKET
        # Only the extension of the client filename reaches the storage key
        extension = os.path.splitext(photo.filename)[1].lower()
        path = self.gateway.upload_file(
            bucket,
            f"{uuid.uuid4()}{extension}",
            photo.data,
            photo.content_type,
            upsert=upsert,
        )
        return path, self.gateway.get_public_url(bucket, path)

    def _discard_photo(self, path: Optional[str]) -> None:
        if not path:
            return
        try:
            self.gateway.remove_file(settings.PROOF_PHOTOS_BUCKET, path)
        except UploadError as exc:
            logger.warning(f"Orphaned proof photo '{path}' left in storage: {exc.detail}")

    def _owned_proof(self, user: Dict[str, Any], proof_id: str) -> Dict[str, Any]:
        rows = self.gateway.query(
            "proofs", "*", filters=[("id", "eq", proof_id)], limit=1
        )
        if not rows:
            raise NotFoundError("Proof not found.")

        proof = rows[0]
        if proof.get("competitor_id") != user["id"] and not user.get("is_admin"):
            raise PermissionDeniedError("You can only change your own proofs.")
        return proof

    async def create_proof(
        self,
        user: Dict[str, Any],
        notifier: Notifier,
        category: EventCategory,
        event: str,
        photo: Optional[PhotoUpload] = None,
    ) -> Dict[str, Any]:
        def write() -> Dict[str, Any]:
            selected = resolve_event(category, event)
            stored_path, photo_url = (
                self._store_photo(photo, upsert=False) if photo else (None, None)
            )
            record = {
                "competitor_id": user["id"],
                "event_type": selected.label,
                "points": selected.points,
                "photo_url": photo_url,
            }
            try:
                rows = self.gateway.insert("proofs", record)
                if not rows:
                    raise RemoteWriteError(detail="Insert returned no row")
            except RemoteWriteError:
                self._discard_photo(stored_path)
                raise
            return rows[0]

        return await run_mutation(
            notifier=notifier,
            cache=self.context.cache,
            write=write,
            invalidate=PROOF_DEPENDENT_QUERIES,
            loading="Registering proof...",
            success="Proof registered!",
            error_message="Failed to register proof.",
        )

    async def update_proof(
        self,
        user: Dict[str, Any],
        notifier: Notifier,
        proof_id: str,
        category: EventCategory,
        event: str,
        photo: Optional[PhotoUpload] = None,
    ) -> Dict[str, Any]:
        def write() -> Dict[str, Any]:
            selected = resolve_event(category, event)
            existing = self._owned_proof(user, proof_id)

            stored_path, photo_url = None, existing.get("photo_url")
            if photo:
                stored_path, photo_url = self._store_photo(photo, upsert=True)

            patch = {
                "event_type": selected.label,
                "points": selected.points,
                "photo_url": photo_url,
            }
            try:
                rows = self.gateway.update("proofs", proof_id, patch)
            except RemoteWriteError:
                self._discard_photo(stored_path)
                raise
            return rows[0] if rows else {**existing, **patch}

        return await run_mutation(
            notifier=notifier,
            cache=self.context.cache,
            write=write,
            invalidate=PROOF_DEPENDENT_QUERIES,
            loading="Updating proof...",
            success="Proof updated!",
            error_message="Failed to update proof.",
        )

    async def delete_proof(
        self, user: Dict[str, Any], notifier: Notifier, proof_id: str
    ) -> None:
        def write() -> None:
            self._owned_proof(user, proof_id)
            self.gateway.delete("proofs", proof_id)

        await run_mutation(
            notifier=notifier,
            cache=self.context.cache,
            write=write,
            invalidate=PROOF_DEPENDENT_QUERIES,
            loading="Removing proof...",
            success="Proof removed!",
            error_message="Failed to remove proof.",
        )
