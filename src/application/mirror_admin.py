import logging

from src.domain.exceptions import InternalServiceError
from src.domain.models import MirrorRepository
from src.infrastructure.acl import GitHubTranslator
from src.infrastructure.config import OrganizationConfigResolver
from src.infrastructure.identity import GitHubAppIdentityProvider

logger = logging.getLogger(__name__)


class MirrorAdminService:
    """Rename and delete operations on existing mirrors. The `fork` property is left untouched."""

    def __init__(self, config_resolver: OrganizationConfigResolver, identity_provider: GitHubAppIdentityProvider):
        self.config_resolver = config_resolver
        self.identity_provider = identity_provider

    async def rename_mirror(self, org_id: str, mirror_name: str, new_mirror_name: str) -> MirrorRepository:
        try:
            logger.info(f"Editing mirror org={org_id} mirror={mirror_name} new_name={new_mirror_name}")

            config = self.config_resolver.resolve(org_id)
            context = await self.identity_provider.org_context(config.private_org)

            repo = await context.client.update_repo(config.private_org, mirror_name, name=new_mirror_name)
            return GitHubTranslator.to_domain(repo)
        except Exception as e:
            logger.error(f"Failed to edit mirror org={org_id} mirror={mirror_name}: {e!r}")
            raise InternalServiceError("Failed to edit mirror", cause=e) from e

    async def delete_mirror(self, org_id: str, org_name: str, mirror_name: str) -> bool:
        # org_name is informational; mirrors always live in the configured private org
        try:
            logger.info(f"Deleting mirror org={org_id} org_name={org_name} mirror={mirror_name}")

            config = self.config_resolver.resolve(org_id)
            context = await self.identity_provider.org_context(config.private_org)

            await context.client.delete_repo(config.private_org, mirror_name)
            return True
        except Exception as e:
            logger.error(f"Failed to delete mirror org={org_id} mirror={mirror_name}: {e!r}")
            raise InternalServiceError("Failed to delete mirror", cause=e) from e
