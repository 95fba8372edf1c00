import logging
from typing import List

import aiohttp

from src.application.leases import RepositoryLeases
from src.application.mirror_admin import MirrorAdminService
from src.application.mirror_queries import MirrorQueryService
from src.application.mirror_saga import CreateMirrorSaga
from src.domain.models import MirrorRepository, MirrorRequest, MirrorResult
from src.infrastructure.config import OrganizationConfigResolver, Settings
from src.infrastructure.identity import GitHubAppIdentityProvider

logger = logging.getLogger(__name__)


class MirrorService:
    """
    Entry point for the four mirror operations, wiring the saga, query and admin
    services to one configuration and one GitHub App identity.
    """

    def __init__(
        self,
        create_saga: CreateMirrorSaga,
        query_service: MirrorQueryService,
        admin_service: MirrorAdminService,
    ):
        self.create_saga = create_saga
        self.query_service = query_service
        self.admin_service = admin_service

    @classmethod
    def from_settings(cls, settings: Settings, session: aiohttp.ClientSession) -> "MirrorService":
        resolver = OrganizationConfigResolver(settings)
        identity_provider = GitHubAppIdentityProvider(settings, session)
        return cls(
            create_saga=CreateMirrorSaga(
                resolver,
                identity_provider,
                git_host=settings.git_host,
                git_timeout=settings.git_timeout_seconds,
                leases=RepositoryLeases(),
            ),
            query_service=MirrorQueryService(resolver, identity_provider),
            admin_service=MirrorAdminService(resolver, identity_provider),
        )

    async def create_mirror(
        self,
        org_id: str,
        fork_repo_owner: str,
        fork_repo_name: str,
        new_repo_name: str,
        new_branch_name: str,
    ) -> MirrorResult:
        request = MirrorRequest(
            fork_repo_owner=fork_repo_owner,
            fork_repo_name=fork_repo_name,
            new_repo_name=new_repo_name,
            new_branch_name=new_branch_name,
        )
        return await self.create_saga.create_mirror(org_id, request)

    async def list_mirrors(self, org_id: str, fork_name: str) -> List[MirrorRepository]:
        return await self.query_service.list_mirrors(org_id, fork_name)

    async def edit_mirror(self, org_id: str, mirror_name: str, new_mirror_name: str) -> MirrorRepository:
        return await self.admin_service.rename_mirror(org_id, mirror_name, new_mirror_name)

    async def delete_mirror(self, org_id: str, org_name: str, mirror_name: str) -> bool:
        return await self.admin_service.delete_mirror(org_id, org_name, mirror_name)
