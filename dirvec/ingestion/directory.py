"""
Google Workspace directory listing.

Pages through the Admin SDK users list and maps each user to the flat record
stored alongside its embedding.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..core.exceptions import DirectoryError, MissingConfigError
from ..utils.logger import get_logger

logger = get_logger("dirvec.ingestion.directory")

DIRECTORY_SCOPES = ["https://www.googleapis.com/auth/admin.directory.user.readonly"]

STATUS_SUSPENDED = "Bloqueado"
STATUS_ACTIVE = "Ativo"


def dig(data: Any, *keys: str, default: Any = None) -> Any:
    """
    Look up a nested key path, returning default when any level is absent.

    >>> dig({"a": {"b": 1}}, "a", "b")
    1
    >>> dig({"a": None}, "a", "b") is None
    True
    """
    if not keys:
        return data
    if not isinstance(data, Mapping) or keys[0] not in data:
        return default
    return dig(data[keys[0]], *keys[1:], default=default)


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Lowercase and trim an address; falsy values pass through as None."""
    if not email:
        return None
    return email.lower().strip()


def map_user(
    user: Mapping[str, Any],
    custom_schema: str = "Horacius",
    custom_field: str = "idunico_horacius",
) -> dict[str, Any]:
    """Map a directory API user to the stored record shape."""
    return {
        "name": dig(user, "name", "fullName"),
        "email": normalize_email(user.get("primaryEmail")),
        "status": STATUS_SUSPENDED if user.get("suspended") else STATUS_ACTIVE,
        "isAdmin": user.get("isAdmin"),
        "lastLoginTime": user.get("lastLoginTime"),
        custom_field: dig(user, "customSchemas", custom_schema, custom_field),
    }


@dataclass
class DirectoryPage:
    """One page of raw users plus the token for the next page."""
    users: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: Optional[str] = None


class UserLister(Protocol):
    """Paginated user listing."""

    def list_users(self, page_token: Optional[str] = None) -> DirectoryPage:
        ...


class DirectorySource:
    """Collect every user across all pages as mapped records."""

    def __init__(
        self,
        lister: UserLister,
        custom_schema: str = "Horacius",
        custom_field: str = "idunico_horacius",
    ):
        self.lister = lister
        self.custom_schema = custom_schema
        self.custom_field = custom_field

    def fetch_all(self) -> list[dict[str, Any]]:
        """
        Return the union of all pages.

        Listing stops when a page has no next token or comes back empty.
        """
        records: list[dict[str, Any]] = []
        page_token: Optional[str] = None
        pages = 0

        while True:
            page = self.lister.list_users(page_token)
            pages += 1
            records.extend(
                map_user(user, self.custom_schema, self.custom_field)
                for user in page.users
            )
            if not page.next_page_token or not page.users:
                break
            page_token = page.next_page_token

        logger.info(f"Listed {len(records)} directory users in {pages} page(s)")
        return records


class GoogleDirectoryClient:
    """Admin SDK Directory API client authenticated with a refresh token."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        refresh_token: Optional[str],
        token_uri: str = "https://oauth2.googleapis.com/token",
        customer: str = "my_customer",
        max_results: int = 500,
        order_by: str = "email",
        projection: str = "full",
        service: Any = None,
    ):
        """
        Initialize the directory client.

        Args:
            client_id: OAuth2 client ID
            client_secret: OAuth2 client secret
            refresh_token: Long-lived refresh token for the admin account
            token_uri: OAuth2 token endpoint
            customer: Workspace customer to list
            max_results: Users per page (API maximum is 500)
            order_by: Sort key for the listing
            projection: "basic", "custom" or "full" (custom schemas need full or custom)
            service: Prebuilt discovery service, mainly for tests
        """
        self.customer = customer
        self.max_results = max_results
        self.order_by = order_by
        self.projection = projection

        if service is None:
            missing = [
                name
                for name, value in (
                    ("CLIENT_ID", client_id),
                    ("CLIENT_SECRET", client_secret),
                    ("REFRESH_TOKEN", refresh_token),
                )
                if not value
            ]
            if missing:
                raise MissingConfigError(
                    f"Missing directory credentials: {', '.join(missing)}"
                )
            credentials = Credentials(
                token=None,
                refresh_token=refresh_token,
                client_id=client_id,
                client_secret=client_secret,
                token_uri=token_uri,
                scopes=DIRECTORY_SCOPES,
            )
            service = build(
                "admin", "directory_v1", credentials=credentials, cache_discovery=False
            )
        self.service = service

    def list_users(self, page_token: Optional[str] = None) -> DirectoryPage:
        params = {
            "customer": self.customer,
            "maxResults": self.max_results,
            "orderBy": self.order_by,
            "projection": self.projection,
        }
        if page_token:
            params["pageToken"] = page_token

        try:
            response = self.service.users().list(**params).execute()
        except (HttpError, GoogleAuthError) as e:
            raise DirectoryError(
                f"Failed to list directory users: {e}",
                {"customer": self.customer, "page_token": page_token},
            ) from e

        return DirectoryPage(
            users=response.get("users", []),
            next_page_token=response.get("nextPageToken"),
        )
