import logging
from typing import List

from src.domain.exceptions import InternalServiceError
from src.domain.models import MirrorRepository
from src.infrastructure.acl import FORK_PROPERTY, GitHubTranslator
from src.infrastructure.config import OrganizationConfigResolver
from src.infrastructure.identity import GitHubAppIdentityProvider

logger = logging.getLogger(__name__)


def build_mirror_search_query(private_org_login: str, public_org_login: str, fork_name: str) -> str:
    """Repository search matching every repo in the private org tagged with the given fork."""
    return f'org:"{private_org_login}" props.{FORK_PROPERTY}:"{public_org_login}/{fork_name}"'


class MirrorQueryService:
    """Read-only lookup of the mirrors tracked for a fork."""

    def __init__(self, config_resolver: OrganizationConfigResolver, identity_provider: GitHubAppIdentityProvider):
        self.config_resolver = config_resolver
        self.identity_provider = identity_provider

    async def list_mirrors(self, org_id: str, fork_name: str) -> List[MirrorRepository]:
        """
        Lists the private repositories whose `fork` property points at `<public org>/<fork_name>`.

        Results keep the search service's ordering across all pages.

        Raises:
            InternalServiceError: if any step fails; the original error is attached as `cause`.
        """
        try:
            logger.info(f"Fetching mirrors org={org_id} fork={fork_name}")

            config = self.config_resolver.resolve(org_id)
            context = await self.identity_provider.org_context(config.private_org)

            private_org_data = await context.client.get_org(config.private_org)
            public_org_data = await context.client.get_org(config.public_org)

            query = build_mirror_search_query(private_org_data["login"], public_org_data["login"], fork_name)
            repos = await context.client.search_repositories(query)

            return [GitHubTranslator.to_domain(repo) for repo in repos]
        except Exception as e:
            logger.error(f"Failed to fetch mirrors org={org_id} fork={fork_name}: {e!r}")
            raise InternalServiceError("Failed to fetch mirrors", cause=e) from e
