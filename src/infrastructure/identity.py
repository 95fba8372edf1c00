import logging
import time
from typing import Optional

import aiohttp
import jwt

from src.domain.exceptions import ConfigurationException, GitHubApiException
from src.domain.models import IdentityBundle, IdentityContext, IdentityRole
from src.infrastructure.config import Settings
from src.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)

# GitHub rejects app JWTs valid for more than 10 minutes
MAX_JWT_LIFETIME = 600
# Backdate `iat` to tolerate clock drift between us and GitHub
CLOCK_DRIFT_ALLOWANCE = 60


class GitHubAppIdentityProvider:
    """
    Produces API clients authenticated as the GitHub App or as one of its installations.

    Nothing is cached: every call mints a fresh JWT or installation token.
    """

    def __init__(self, settings: Settings, session: aiohttp.ClientSession):
        if not settings.github_app_id:
            raise ConfigurationException("GITHUB_APP_ID must be set.")
        self.settings = settings
        self.session = session
        self._private_key: Optional[str] = None

    def generate_jwt(self, expiration_seconds: int = MAX_JWT_LIFETIME) -> str:
        """
        Signs an RS256 JWT identifying the app.

        Returns:
            str: The encoded token.
        """
        if self._private_key is None:
            self._private_key = self.settings.load_private_key()

        now = int(time.time())
        payload = {
            "iat": now - CLOCK_DRIFT_ALLOWANCE,
            "exp": now + min(expiration_seconds, MAX_JWT_LIFETIME - CLOCK_DRIFT_ALLOWANCE),
            "iss": self.settings.github_app_id,
        }
        try:
            return jwt.encode(payload, self._private_key, algorithm="RS256")
        except (jwt.PyJWTError, ValueError) as e:
            logger.error(f"Failed to sign GitHub App JWT: {e}")
            raise ConfigurationException(f"Failed to sign GitHub App JWT: {e}") from e

    def app_context(self) -> IdentityContext:
        token = self.generate_jwt()
        client = GitHubRestClient(
            token, self.session, api_url=self.settings.github_api_url, auth_scheme="Bearer"
        )
        return IdentityContext(role=IdentityRole.APP, client=client, access_token=token)

    async def get_org_installation_id(self, org: str, app: Optional[IdentityContext] = None) -> int:
        app = app or self.app_context()
        installation = await app.client.get_org_installation(org)
        try:
            return int(installation["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise GitHubApiException(f"Malformed installation payload for {org}: {installation!r}") from e

    async def installation_context(
        self,
        installation_id: int,
        role: IdentityRole = IdentityRole.PRIVATE,
        app: Optional[IdentityContext] = None,
    ) -> IdentityContext:
        """Mints an installation access token and wraps it in a client."""
        app = app or self.app_context()
        token_data = await app.client.create_installation_token(installation_id)
        try:
            token = token_data["token"]
        except (KeyError, TypeError) as e:
            raise GitHubApiException(
                f"Malformed access token payload for installation {installation_id}"
            ) from e

        logger.info(f"Minted {role.value} installation token for installation {installation_id}.")

        client = GitHubRestClient(token, self.session, api_url=self.settings.github_api_url)
        return IdentityContext(
            role=role, client=client, access_token=token, installation_id=installation_id
        )

    async def org_context(self, org: str, role: IdentityRole = IdentityRole.PRIVATE) -> IdentityContext:
        app = self.app_context()
        installation_id = await self.get_org_installation_id(org, app=app)
        return await self.installation_context(installation_id, role=role, app=app)

    async def authenticate(self, public_org: str, private_org: str) -> IdentityBundle:
        """
        Builds the three contexts used by the create-mirror saga.

        Args:
            public_org (str): Organization holding the forks; its installation is the contribution identity.
            private_org (str): Organization receiving the mirrors; its installation is the private identity.
        """
        app = self.app_context()

        contribution_id = await self.get_org_installation_id(public_org, app=app)
        contribution = await self.installation_context(
            contribution_id, role=IdentityRole.CONTRIBUTION, app=app
        )

        private_id = await self.get_org_installation_id(private_org, app=app)
        private = await self.installation_context(private_id, role=IdentityRole.PRIVATE, app=app)

        return IdentityBundle(contribution=contribution, private=private, app=app)
