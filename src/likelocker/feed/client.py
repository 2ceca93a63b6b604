"""
Minimal Bluesky XRPC client: session handling and the liked-posts feed.

Only what the archiver consumes is implemented:
- com.atproto.server.createSession  (handle + app password -> JWTs)
- com.atproto.server.refreshSession (refresh JWT -> fresh JWTs)
- app.bsky.feed.getActorLikes       (actor, cursor, limit -> page)

Access tokens expire after a couple of hours while watch mode runs for days,
so an `ExpiredToken` answer triggers one refresh and one replay.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from http.client import HTTPException
from typing import Any, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from ..net.http import DEFAULT_USER_AGENT, Opener
from ..net.retry import RetryConfig, with_retry
from ..net.throttle import Throttle
from .embeds import parse_likes_page
from .models import LikesPage


DEFAULT_SERVICE = "https://bsky.social"
DEFAULT_TIMEOUT_S = 30.0

# Upper bound accepted by getActorLikes
MAX_PAGE_SIZE = 100

CREATE_SESSION = "com.atproto.server.createSession"
REFRESH_SESSION = "com.atproto.server.refreshSession"
GET_ACTOR_LIKES = "app.bsky.feed.getActorLikes"

logger = logging.getLogger(__name__)


class XrpcError(Exception):
    """
    An XRPC call failed.

    Attributes:
        status_code: HTTP status, None for transport failures.
        error: XRPC error name from the response body (e.g. "ExpiredToken").
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error


class AuthenticationError(Exception):
    """Session creation was rejected or could not be performed."""


class FeedRequestError(Exception):
    """A liked-posts page could not be fetched."""


@dataclass(frozen=True)
class Session:
    access_jwt: str
    refresh_jwt: str
    handle: str
    did: str

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> "Session":
        access = data.get("accessJwt")
        refresh = data.get("refreshJwt")
        if not isinstance(access, str) or not isinstance(refresh, str):
            raise XrpcError("session response is missing tokens")
        return cls(
            access_jwt=access,
            refresh_jwt=refresh,
            handle=str(data.get("handle") or ""),
            did=str(data.get("did") or ""),
        )


def _error_from_http(exc: HTTPError, nsid: str) -> XrpcError:
    error_name: Optional[str] = None
    message = ""
    try:
        body = json.loads(exc.read().decode("utf-8") or "{}")
        if isinstance(body, Mapping):
            error_name = body.get("error") if isinstance(body.get("error"), str) else None
            message = str(body.get("message") or "")
    except (ValueError, OSError):
        pass
    finally:
        exc.close()

    detail = ": ".join(part for part in (error_name, message) if part)
    return XrpcError(
        f"{nsid} failed with HTTP {exc.code}" + (f" ({detail})" if detail else ""),
        status_code=int(exc.code),
        error=error_name,
    )


class BlueskyClient:
    """
    Blocking XRPC client backed by urllib.

    Usage:
        client = BlueskyClient()
        client.create_session("alice.bsky.social", app_password)
        page = client.get_actor_likes("alice.bsky.social", limit=50)
        while page.cursor:
            page = client.get_actor_likes("alice.bsky.social", cursor=page.cursor)
    """

    def __init__(
        self,
        *,
        service: str = DEFAULT_SERVICE,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        retry: Optional[RetryConfig] = None,
        throttle: Optional[Throttle] = None,
        opener: Opener = urlopen,
    ) -> None:
        self._service = service.rstrip("/")
        self._timeout_s = timeout_s
        self._retry = retry
        self._throttle = throttle
        self._opener = opener
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def _call(
        self,
        nsid: str,
        *,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None,
        token: Optional[str] = None,
    ) -> dict[str, Any]:
        url = f"{self._service}/xrpc/{nsid}"
        if params:
            url = f"{url}?{urlencode({k: v for k, v in params.items() if v is not None})}"

        headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"}
        data: Optional[bytes] = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        if token:
            headers["Authorization"] = f"Bearer {token}"

        def _once() -> dict[str, Any]:
            req = Request(url, data=data, headers=headers, method=method)
            try:
                with self._opener(req, timeout=self._timeout_s) as resp:
                    raw = resp.read()
            except HTTPError as exc:
                raise _error_from_http(exc, nsid) from exc

            try:
                payload = json.loads(raw.decode("utf-8") or "{}")
            except ValueError as exc:
                raise XrpcError(f"{nsid} returned invalid JSON") from exc
            if not isinstance(payload, dict):
                raise XrpcError(f"{nsid} returned a non-object payload")
            return payload

        return with_retry(_once, config=self._retry)

    def create_session(self, identifier: str, password: str) -> Session:
        """
        Log in with a handle (or DID) and an app password.

        Raises:
            AuthenticationError: On rejected credentials or transport failure.
        """
        try:
            data = self._call(
                CREATE_SESSION,
                method="POST",
                body={"identifier": identifier, "password": password},
            )
            session = Session.from_response(data)
        except (XrpcError, URLError, HTTPException, OSError) as exc:
            raise AuthenticationError(f"authentication failed: {exc}") from exc

        self._session = session
        logger.info("Authenticated as %s (%s)", session.handle or identifier, session.did or "unknown did")
        return session

    def refresh_session(self) -> Session:
        """
        Trade the refresh JWT for a new token pair.

        Raises:
            AuthenticationError: If there is no session or the refresh failed.
        """
        if self._session is None:
            raise AuthenticationError("no session to refresh; call create_session first")
        try:
            # Body-less POST authorized by the refresh token
            data = self._call(REFRESH_SESSION, method="POST", token=self._session.refresh_jwt)
            session = Session.from_response(data)
        except (XrpcError, URLError, HTTPException, OSError) as exc:
            raise AuthenticationError(f"session refresh failed: {exc}") from exc

        self._session = session
        logger.info("Refreshed session for %s", session.handle)
        return session

    def get_actor_likes(
        self,
        actor: str,
        *,
        cursor: Optional[str] = None,
        limit: int = 50,
    ) -> LikesPage:
        """
        Fetch one page of the actor's liked posts, newest first.

        Raises:
            FeedRequestError: On any transport, auth or payload failure.
        """
        if self._session is None:
            raise FeedRequestError("not authenticated; call create_session first")

        params = {
            "actor": actor,
            "limit": max(1, min(int(limit), MAX_PAGE_SIZE)),
            "cursor": cursor or None,
        }

        if self._throttle is not None:
            self._throttle.wait()

        try:
            try:
                payload = self._call(GET_ACTOR_LIKES, params=params, token=self._session.access_jwt)
            except XrpcError as exc:
                if exc.error != "ExpiredToken":
                    raise
                logger.info("Access token expired, refreshing session")
                self.refresh_session()
                payload = self._call(GET_ACTOR_LIKES, params=params, token=self._session.access_jwt)
        except (XrpcError, AuthenticationError, URLError, HTTPException, OSError) as exc:
            raise FeedRequestError(f"failed to fetch likes: {exc}") from exc

        return parse_likes_page(payload)
