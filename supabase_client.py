import logging
import mimetypes

import requests

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"  # Postgres unique_violation


class SupabaseError(Exception):
    """
    Non-2xx answer from Supabase, or no usable answer at all (transport
    failure or a body that is not JSON). Keeps what the API told us so callers can
    classify on structured fields (code/details) instead of the message text.
    """

    def __init__(self, message: str, status_code: int | None = None,
                 code: str | None = None, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details

    @property
    def is_unique_violation(self) -> bool:
        if self.code == UNIQUE_VIOLATION:
            return True
        # adapters that only forward the text
        return "duplicate key" in (self.message or "").lower()


class SupabaseClient:
    """
    Minimal Supabase client for one table + one storage bucket:
      - inserting a row and reading back its id
      - patching / deleting that row
      - uploading objects and bulk-removing them
    """

    def __init__(self, url: str, api_key: str, table: str, timeout: float = 90):
        if not url or not api_key:
            raise RuntimeError("SUPABASE_URL / SUPABASE_ANON_KEY not set in environment.")
        self.base_url = url.rstrip("/")
        self.table = table
        self.timeout = timeout

        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
        }
        self.headers_json = {**self.headers, "Content-Type": "application/json"}

    # ---------------------------------------------------------------------
    # Transport + errors
    # ---------------------------------------------------------------------
    def _send(self, method: str, url: str, what: str, **kwargs) -> requests.Response:
        """
        One HTTP call. Transport failures (timeouts, refused connections) come
        out as SupabaseError like any API error, so callers handle one type.
        """
        try:
            r = getattr(requests, method)(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("Supabase %s failed: %s", what, e)
            raise SupabaseError(str(e)) from e
        self._raise_for(r, what)
        return r

    @staticmethod
    def _json(r: requests.Response, what: str):
        try:
            return r.json()
        except ValueError as e:
            logger.warning("Supabase %s answered with a non-JSON body: %s", what, r.text[:200])
            raise SupabaseError(f"Resposta inválida do servidor ({what}).", status_code=r.status_code) from e

    @staticmethod
    def _raise_for(r: requests.Response, what: str) -> None:
        if r.status_code < 300:
            return
        try:
            body = r.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("error") or r.text
        logger.warning("Supabase %s failed: %s %s", what, r.status_code, message)
        raise SupabaseError(
            message,
            status_code=r.status_code,
            code=str(body["code"]) if body.get("code") is not None else None,
            details=body.get("details"),
        )

    # ---------------------------------------------------------------------
    # Table rows (PostgREST)
    # ---------------------------------------------------------------------
    def _rows_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def insert(self, record: dict) -> dict:
        """Insert one row; returns the created row (at least its id)."""
        r = self._send(
            "post", self._rows_url(), "insert",
            headers={**self.headers_json, "Prefer": "return=representation"},
            params={"select": "id"},
            json=[record],
        )
        data = self._json(r, "insert")
        if isinstance(data, list):
            return data[0] if data else {}
        return data or {}

    def update(self, record_id, fields: dict) -> None:
        self._send(
            "patch", self._rows_url(), "update",
            headers=self.headers_json,
            params={"id": f"eq.{record_id}"},
            json=fields,
        )

    def delete_record(self, record_id) -> None:
        self._send(
            "delete", self._rows_url(), "delete",
            headers=self.headers,
            params={"id": f"eq.{record_id}"},
        )

    # ---------------------------------------------------------------------
    # Storage
    # ---------------------------------------------------------------------
    def upload_object(self, bucket: str, path: str, fileobj, content_type: str | None = None,
                      cache_control: str = "3600", upsert: bool = False) -> str:
        """
        Upload a file-like object to {bucket}/{path}. Returns the object path
        inside the bucket (what gets stored in the row).
        """
        try:
            fileobj.seek(0)
        except Exception:
            pass
        ct = content_type or mimetypes.guess_type(path)[0] or "application/octet-stream"
        r = self._send(
            "post", f"{self.base_url}/storage/v1/object/{bucket}/{path}", "upload",
            headers={
                **self.headers,
                "Content-Type": ct,
                "cache-control": f"max-age={cache_control}",
                "x-upsert": "true" if upsert else "false",
            },
            data=fileobj.read(),
        )
        body = self._json(r, "upload")
        key = (body if isinstance(body, dict) else {}).get("Key") or f"{bucket}/{path}"
        # Storage answers with "{bucket}/{path}"
        prefix = f"{bucket}/"
        return key[len(prefix):] if key.startswith(prefix) else key

    def delete_objects(self, bucket: str, paths: list) -> None:
        self._send(
            "delete", f"{self.base_url}/storage/v1/object/{bucket}", "remove",
            headers=self.headers_json,
            json={"prefixes": list(paths)},
        )


# what a store call can raise: the client maps transport failures to
# SupabaseError, other stores may let requests' own errors through
STORE_ERRORS = (SupabaseError, requests.RequestException)
