"""OAuth 2.0 authorization-code bootstrap and refresh-token renewal."""
import functools
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

import google.auth.exceptions
import requests
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import MissingTokenError, OAuth2Error

from invoiceflow.auth.models import Credential
from invoiceflow.auth.store import CredentialStore
from invoiceflow.config.settings import OAuthSettings
from invoiceflow.utils.exceptions import (
    AuthServerError,
    CorruptRecordError,
    CredentialError,
    CredentialNotFoundError,
    DecodeError,
    ScopeMismatchError,
    TransportError
)
from invoiceflow.utils.logger import get_logger

logger = get_logger()


def build_flow(oauth: OAuthSettings) -> Flow:
    """Installed-app flow for the configured client and redirect."""
    client_config = {
        "installed": {
            "client_id": oauth.client_id,
            "client_secret": oauth.client_secret,
            "auth_uri": oauth.auth_uri,
            "token_uri": oauth.token_uri,
            "redirect_uris": [oauth.redirect_uri]
        }
    }
    return Flow.from_client_config(
        client_config,
        scopes=list(oauth.scopes),
        redirect_uri=oauth.redirect_uri
    )


def _scope_list(scope: Any) -> List[str]:
    if not scope:
        return []
    if isinstance(scope, str):
        return scope.split()
    return list(scope)


class AuthClient:
    """Runs the two OAuth grant flows and persists every credential it produces.

    There is no intermediate state: a flow either ends with a saved
    credential or raises, leaving the store as it was.
    """

    def __init__(
        self,
        oauth: OAuthSettings,
        store: CredentialStore,
        request: Optional[Callable] = None,
        timeout: float = 30.0,
        flow_factory: Optional[Callable[[OAuthSettings], Flow]] = None
    ):
        self.oauth = oauth
        self.store = store
        self.request = request or Request()
        self.timeout = timeout
        self.flow_factory = flow_factory or build_flow

    def bootstrap(self, prompt) -> Credential:
        """
        First-time authorization through a human.

        Args:
            prompt: Shows the authorization URL and reads back the pasted code

        Returns:
            The saved credential

        Raises:
            CredentialError: No code was entered
            ScopeMismatchError: Fewer (or more) scopes were granted than required
        """
        logger.info("Starting OAuth authorization flow")
        flow = self.flow_factory(self.oauth)
        auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")

        prompt.show(
            "Open this URL in a browser, grant access, then paste the code below:\n"
            f"{auth_url}"
        )
        try:
            code = prompt.ask("Authorization code: ").strip()
        except EOFError as e:
            raise CredentialError("No authorization code entered") from e
        if not code:
            raise CredentialError("No authorization code entered")

        token = self._fetch_token(flow, code)

        granted = _scope_list(token.get("scope"))
        if len(granted) != len(self.oauth.scopes):
            logger.error(
                f"Authorization granted {len(granted)} of {len(self.oauth.scopes)} required scopes"
            )
            raise ScopeMismatchError(granted, list(self.oauth.scopes))

        credential = Credential.from_token_response(dict(token, scope=" ".join(granted)))
        logger.info("OAuth authorization successful")
        return self.store.save(credential)

    def refresh(self, credential: Credential) -> Credential:
        """Exchange the stored refresh token for a new access token."""
        if not credential.refresh_token:
            raise CredentialError("Credential has no refresh token; run 'invoiceflow authorize'")

        logger.info("Refreshing OAuth access token")
        creds = Credentials(
            token=credential.access_token,
            refresh_token=credential.refresh_token,
            token_uri=self.oauth.token_uri,
            client_id=self.oauth.client_id,
            client_secret=self.oauth.client_secret
        )
        try:
            creds.refresh(functools.partial(self.request, timeout=self.timeout))
        except google.auth.exceptions.RefreshError as e:
            raise AuthServerError("token refresh", None, str(e)) from e
        except google.auth.exceptions.TransportError as e:
            raise TransportError(f"Token endpoint unreachable: {e}") from e

        refreshed = Credential(
            access_token=creds.token,
            expires_in=_seconds_until(creds.expiry, credential.expires_in),
            scope=credential.scope,
            token_type=credential.token_type,
            refresh_token=creds.refresh_token or ""
        )
        logger.info("OAuth access token refreshed successfully")
        return self.store.save(credential.renewed_by(refreshed))

    def load_or_bootstrap(self, prompt) -> Credential:
        """Load the saved credential, authorizing from scratch when there is none."""
        try:
            return self.store.load()
        except CredentialNotFoundError:
            logger.info("No saved credential found")
        except CorruptRecordError as e:
            logger.warning(f"{e}")
            logger.info("Will re-authorize and replace the corrupted token file")
        return self.bootstrap(prompt)

    def _fetch_token(self, flow: Flow, code: str) -> dict:
        try:
            return flow.fetch_token(code=code, timeout=self.timeout)
        except MissingTokenError as e:
            raise DecodeError(f"Token endpoint returned no access token: {e}") from e
        except OAuth2Error as e:
            raise AuthServerError("token request", e.status_code, f"{e.error}: {e.description}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Token endpoint unreachable: {e}") from e
        except Warning as w:
            # oauthlib raises when the granted scope differs from the requested one
            token = getattr(w, "token", None)
            if token is None:
                raise
            return token


def _seconds_until(expiry: Optional[datetime], default: int) -> int:
    if expiry is None:
        return default
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return max(int((expiry - now).total_seconds()), 0)
