"""
Database Configuration

Supabase gateway used for every remote operation: table queries and writes
over the REST API (PostgREST), database functions (rpc), object storage,
realtime change notifications and authentication.

Table reads and writes use a service-key client (already pooled via
PostgREST). Authentication calls use a short-lived anon client per call so a
user's session never leaks into the shared client. Realtime needs the async
client, which is created once at startup by ``connect_realtime``.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import uuid

from postgrest.exceptions import APIError
from supabase import AsyncClient, Client, ClientOptions, acreate_client, create_client

from verao_fitness.core.config import settings
from verao_fitness.core.errors import (
    AuthenticationError,
    RemoteReadError,
    RemoteWriteError,
    UploadError,
)
from verao_fitness.services.logger import logger

# (column, operator, value); operator is a PostgREST filter method name
Filter = Tuple[str, str, Any]

FILTER_OPERATORS = {"eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike", "is_"}

ChangeCallback = Callable[[Dict[str, Any]], Any]


def _user_to_dict(user: Any) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": dict(user.user_metadata or {}),
    }


def _api_error_text(exc: APIError) -> str:
    return exc.message or str(exc)


class SupabaseGateway:
    """Thin wrapper over the Supabase clients with the app's error taxonomy."""

    def __init__(
        self,
        client: Client,
        url: str = "",
        anon_key: str = "",
        realtime_client: Optional[AsyncClient] = None,
    ):
        self.client = client
        self._url = url
        self._anon_key = anon_key
        self.realtime_client = realtime_client

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def query(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: Optional[Iterable[Filter]] = None,
        order: Optional[str] = None,
        desc: bool = False,
        range_: Optional[Tuple[int, int]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        builder = self.client.table(table).select(columns)

        for column, operator, value in filters or []:
            if operator not in FILTER_OPERATORS:
                raise ValueError(f"Unsupported filter operator '{operator}'")
            builder = getattr(builder, operator)(column, value)

        if order:
            builder = builder.order(order, desc=desc)
        if range_ is not None:
            builder = builder.range(range_[0], range_[1])
        if limit is not None:
            builder = builder.limit(limit)

        try:
            result = builder.execute()
        except APIError as exc:
            logger.warning(f"Query on '{table}' failed: {_api_error_text(exc)}")
            raise RemoteReadError(detail=_api_error_text(exc)) from exc

        return result.data or []

    def insert(self, table: str, record: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            result = self.client.table(table).insert(record).execute()
        except APIError as exc:
            logger.warning(f"Insert into '{table}' failed: {_api_error_text(exc)}")
            raise RemoteWriteError(detail=_api_error_text(exc)) from exc
        return result.data or []

    def update(
        self, table: str, record_id: str, patch: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        try:
            result = self.client.table(table).update(patch).eq("id", record_id).execute()
        except APIError as exc:
            logger.warning(f"Update of '{table}' {record_id} failed: {_api_error_text(exc)}")
            raise RemoteWriteError(detail=_api_error_text(exc)) from exc
        return result.data or []

    def delete(self, table: str, record_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.client.table(table).delete().eq("id", record_id).execute()
        except APIError as exc:
            logger.warning(f"Delete from '{table}' {record_id} failed: {_api_error_text(exc)}")
            raise RemoteWriteError(detail=_api_error_text(exc)) from exc
        return result.data or []

    def rpc(
        self, function: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        try:
            result = self.client.rpc(function, params or {}).execute()
        except APIError as exc:
            logger.warning(f"RPC '{function}' failed: {_api_error_text(exc)}")
            raise RemoteReadError(detail=_api_error_text(exc)) from exc
        return result.data or []

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def upload_file(
        self,
        bucket: str,
        name: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        """Upload ``data`` and return its path inside ``bucket``."""
        try:
            response = self.client.storage.from_(bucket).upload(
                path=name,
                file=data,
                file_options={
                    "content-type": content_type,
                    "upsert": "true" if upsert else "false",
                },
            )
        except Exception as exc:
            logger.warning(f"Upload of '{name}' to '{bucket}' failed: {exc}")
            raise UploadError(detail=str(exc)) from exc
        return response.path

    def get_public_url(self, bucket: str, path: str) -> str:
        return self.client.storage.from_(bucket).get_public_url(path)

    def remove_file(self, bucket: str, path: str) -> None:
        try:
            self.client.storage.from_(bucket).remove([path])
        except Exception as exc:
            logger.warning(f"Removal of '{path}' from '{bucket}' failed: {exc}")
            raise UploadError(detail=str(exc)) from exc

    # ------------------------------------------------------------------
    # Realtime
    # ------------------------------------------------------------------

    async def connect_realtime(self) -> None:
        if self.realtime_client is None:
            self.realtime_client = await acreate_client(
                self._url, self._anon_key or settings.SUPABASE_SERVICE_KEY
            )

    async def subscribe(
        self, table: str, event_mask: str, callback: ChangeCallback
    ) -> Any:
        """Open a channel for postgres changes on ``table`` and return it."""
        if self.realtime_client is None:
            raise RuntimeError("Realtime client is not connected")

        channel = self.realtime_client.channel(
            f"realtime-{table}-{uuid.uuid4().hex[:8]}"
        )
        channel.on_postgres_changes(
            event_mask, callback=callback, table=table, schema="public"
        )
        await channel.subscribe()
        return channel

    async def unsubscribe(self, handle: Any) -> None:
        if self.realtime_client is not None:
            await self.realtime_client.remove_channel(handle)

    async def disconnect_realtime(self) -> None:
        if self.realtime_client is None:
            return
        client, self.realtime_client = self.realtime_client, None
        await client.realtime.close()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _auth_client(self) -> Client:
        return create_client(
            self._url,
            self._anon_key,
            options=ClientOptions(auto_refresh_token=False, persist_session=False),
        )

    def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> None:
        try:
            self._auth_client().auth.sign_up(
                {"email": email, "password": password, "options": {"data": metadata}}
            )
        except Exception as exc:
            raise AuthenticationError(str(exc), detail=str(exc)) from exc

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        try:
            response = self._auth_client().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as exc:
            raise AuthenticationError(str(exc), detail=str(exc)) from exc

        if response.session is None or response.user is None:
            raise AuthenticationError("Sign in did not return a session.")

        return {
            "access_token": response.session.access_token,
            "refresh_token": response.session.refresh_token,
            "expires_in": response.session.expires_in,
            "user": _user_to_dict(response.user),
        }

    def sign_out(self, access_token: str) -> None:
        try:
            self.client.auth.admin.sign_out(access_token)
        except Exception as exc:
            raise AuthenticationError(str(exc), detail=str(exc)) from exc

    def get_current_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.auth.get_user(access_token)
        except Exception as exc:
            logger.debug(f"Token rejected by Supabase auth: {exc}")
            return None
        if response is None or response.user is None:
            return None
        return _user_to_dict(response.user)


_gateway: Optional[SupabaseGateway] = None


def get_gateway() -> SupabaseGateway:
    """
    Get the shared gateway, creating the Supabase client on first use.
    """
    global _gateway

    if _gateway is None:
        if not settings.supabase_configured:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
        _gateway = SupabaseGateway(
            client,
            url=settings.SUPABASE_URL,
            anon_key=settings.SUPABASE_ANON_KEY or settings.SUPABASE_SERVICE_KEY,
        )
    return _gateway
