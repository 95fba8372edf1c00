import logging
from pathlib import Path
from typing import Any, AsyncContextManager, Callable, Dict, Optional

from src.application.leases import RepositoryLeases
from src.application.saga import Saga
from src.domain.exceptions import (
    ConfigurationException,
    GitHubApiException,
    MirrorServiceException,
    NotFoundException,
    RepositoryAlreadyExistsException,
)
from src.domain.models import IdentityBundle, IdentityContext, MirrorRequest, MirrorResult, OrganizationConfig
from src.infrastructure.acl import FORK_PROPERTY, GitHubTranslator
from src.infrastructure.config import OrganizationConfigResolver
from src.infrastructure.git_client import (
    BOT_NAME,
    DEFAULT_TIMEOUT,
    GitClient,
    bot_email,
    build_auth_url,
    temporary_directory,
)
from src.infrastructure.identity import GitHubAppIdentityProvider

logger = logging.getLogger(__name__)

UPSTREAM_REMOTE = "upstream"
ORIGIN_REMOTE = "origin"


class CreateMirrorSaga:
    """
    Creates a private mirror of a public fork.

    Steps before the private repository exists (config, identities, duplicate check,
    fork lookup) report failure as MirrorResult(success=False). From cloning onward
    errors are raised; once the private repository is created, it is deleted again
    before the error propagates.
    """

    def __init__(
        self,
        config_resolver: OrganizationConfigResolver,
        identity_provider: GitHubAppIdentityProvider,
        git_client_factory: Callable[..., GitClient] = GitClient,
        workdir_factory: Callable[[], AsyncContextManager[Path]] = temporary_directory,
        git_host: str = "github.com",
        git_timeout: float = DEFAULT_TIMEOUT,
        leases: Optional[RepositoryLeases] = None,
    ):
        self.config_resolver = config_resolver
        self.identity_provider = identity_provider
        self.git_client_factory = git_client_factory
        self.workdir_factory = workdir_factory
        self.git_host = git_host
        self.git_timeout = git_timeout
        self.leases = leases or RepositoryLeases()

    async def create_mirror(self, org_id: str, request: MirrorRequest) -> MirrorResult:
        logger.info(f"createMirror org={org_id} fork={request.fork_full_name} "
                    f"repo={request.new_repo_name} branch={request.new_branch_name}")

        try:
            config = self.config_resolver.resolve(org_id)
        except ConfigurationException as e:
            logger.error(f"Error creating mirror: {e}")
            return MirrorResult(success=False)

        # GitHub org and repo names are case-insensitive
        async with self.leases.hold((config.private_org.lower(), request.new_repo_name.lower())):
            try:
                identities = await self.identity_provider.authenticate(config.public_org, config.private_org)
                await self._ensure_name_available(identities, config, request)
                fork_data = await identities.contribution.client.get_repo(
                    request.fork_repo_owner, request.fork_repo_name
                )
                default_branch = fork_data.get("default_branch")
                if not default_branch:
                    raise GitHubApiException(f"Fork {request.fork_full_name} reports no default branch")
            except RepositoryAlreadyExistsException as e:
                logger.info(str(e))
                return MirrorResult(success=False)
            except MirrorServiceException as e:
                logger.error(f"Error creating mirror: {e}")
                return MirrorResult(success=False)

            new_repo = await self._replicate(config, identities, request, default_branch)

        logger.info(f"Created mirror {new_repo.get('full_name')} of {request.fork_full_name}.")
        return MirrorResult(success=True, data=GitHubTranslator.to_domain(new_repo))

    async def _ensure_name_available(
        self, identities: IdentityBundle, config: OrganizationConfig, request: MirrorRequest
    ) -> None:
        """
        Probes the public org (by canonical login) and, when distinct, the private org.
        Not-found means free; any other lookup error propagates.
        """
        org_data = await identities.contribution.client.get_org(config.public_org)
        public_login = org_data["login"]
        await self._probe_repo(identities.contribution, public_login, request.new_repo_name)

        if config.private_org.lower() != public_login.lower():
            await self._probe_repo(identities.private, config.private_org, request.new_repo_name)

    async def _probe_repo(self, context: IdentityContext, owner: str, name: str) -> None:
        try:
            await context.client.get_repo(owner, name)
        except NotFoundException:
            return
        raise RepositoryAlreadyExistsException(owner, name)

    async def _replicate(
        self,
        config: OrganizationConfig,
        identities: IdentityBundle,
        request: MirrorRequest,
        default_branch: str,
    ) -> Dict[str, Any]:
        private = identities.private

        async with self.workdir_factory() as workdir:
            git = self.git_client_factory(workdir, timeout=self.git_timeout)

            async with Saga("create-mirror") as saga:
                await saga.step("clone-fork", lambda: self._clone_fork(git, identities, request))

                await saga.step(
                    "ensure-fork-property",
                    lambda: self._ensure_fork_property(private, config.private_org),
                )

                new_repo = await saga.step(
                    "create-private-repo",
                    lambda: private.client.create_org_repo(
                        config.private_org,
                        request.new_repo_name,
                        private=True,
                        description=f"Mirror of {request.fork_full_name}",
                        custom_properties={FORK_PROPERTY: request.fork_full_name},
                    ),
                    compensation=lambda repo: self._delete_private_repo(private, config.private_org, repo),
                )

                upstream_url = build_auth_url(
                    private.access_token, new_repo["owner"]["login"], new_repo["name"], host=self.git_host
                )

                async def push_default_branch() -> None:
                    await git.add_remote(UPSTREAM_REMOTE, upstream_url)
                    await git.push(UPSTREAM_REMOTE, default_branch)

                await saga.step("push-default-branch", push_default_branch)
                await saga.step(
                    "create-branch",
                    lambda: git.checkout_branch(request.new_branch_name, default_branch),
                )
                # origin was cloned with the contribution token, so this push acts as the contribution identity
                await saga.step(
                    "push-branch-to-fork",
                    lambda: git.push(ORIGIN_REMOTE, request.new_branch_name),
                )

        return new_repo

    async def _clone_fork(self, git: GitClient, identities: IdentityBundle, request: MirrorRequest) -> None:
        remote = build_auth_url(
            identities.contribution.access_token,
            request.fork_repo_owner,
            request.fork_repo_name,
            host=self.git_host,
        )
        await git.clone(remote)
        await git.configure_identity(BOT_NAME, bot_email(identities.private.installation_id))

    async def _ensure_fork_property(self, private: IdentityContext, org: str) -> None:
        """Creates the `fork` string property on the org unless it is already defined."""
        if await self._has_fork_property(private, org):
            return

        logger.info(f"Creating custom property '{FORK_PROPERTY}' on {org}.")
        try:
            await private.client.create_or_update_custom_property(org, FORK_PROPERTY, value_type="string")
        except GitHubApiException as e:
            # A concurrent saga may have defined it first
            if e.status in {409, 422} and await self._has_fork_property(private, org):
                logger.info(f"Custom property '{FORK_PROPERTY}' appeared concurrently on {org}.")
                return
            raise

    async def _has_fork_property(self, private: IdentityContext, org: str) -> bool:
        for prop in await private.client.get_org_custom_properties(org):
            if prop.get("property_name") != FORK_PROPERTY:
                continue
            if prop.get("value_type", "string") != "string":
                raise ConfigurationException(
                    f"Custom property '{FORK_PROPERTY}' on {org} has type "
                    f"'{prop.get('value_type')}', expected 'string'."
                )
            return True
        return False

    async def _delete_private_repo(self, private: IdentityContext, org: str, repo: Dict[str, Any]) -> None:
        name = repo.get("name")
        logger.warning(f"Deleting partially created mirror {org}/{name}.")
        await private.client.delete_repo(org, name)
