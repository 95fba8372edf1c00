import unittest
from unittest.mock import AsyncMock

from src.application.mirror_admin import MirrorAdminService
from src.domain.exceptions import InternalServiceError, NotFoundException
from src.domain.models import IdentityContext, IdentityRole
from src.infrastructure.config import OrganizationConfigResolver, Settings


class _FakeIdentityProvider:
    def __init__(self, client) -> None:
        self.client = client

    async def org_context(self, org, role=IdentityRole.PRIVATE):
        return IdentityContext(role=role, client=self.client, access_token="t", installation_id=7)


class TestMirrorAdminService(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.client = AsyncMock()
        self.service = MirrorAdminService(
            OrganizationConfigResolver(Settings(private_org="acme-private")),
            _FakeIdentityProvider(self.client),
        )

    async def test_rename_updates_repo_in_private_org(self) -> None:
        self.client.update_repo.return_value = {
            "id": 9, "name": "widget-renamed", "full_name": "acme-private/widget-renamed",
            "owner": {"login": "acme-private"}, "private": True,
        }

        mirror = await self.service.rename_mirror("acme", "widget-mirror", "widget-renamed")

        self.client.update_repo.assert_awaited_once_with("acme-private", "widget-mirror", name="widget-renamed")
        self.assertEqual(mirror.name, "widget-renamed")

    async def test_rename_failure_is_wrapped(self) -> None:
        error = NotFoundException()
        self.client.update_repo.side_effect = error

        with self.assertRaises(InternalServiceError) as ctx:
            await self.service.rename_mirror("acme", "missing", "other")

        self.assertEqual(str(ctx.exception), "Failed to edit mirror")
        self.assertIs(ctx.exception.cause, error)

    async def test_delete_removes_repo_from_private_org(self) -> None:
        result = await self.service.delete_mirror("acme", "some-other-org", "widget-mirror")

        self.assertTrue(result)
        self.client.delete_repo.assert_awaited_once_with("acme-private", "widget-mirror")

    async def test_delete_failure_is_wrapped(self) -> None:
        self.client.delete_repo.side_effect = NotFoundException()

        with self.assertRaises(InternalServiceError) as ctx:
            await self.service.delete_mirror("acme", "acme", "missing")

        self.assertEqual(str(ctx.exception), "Failed to delete mirror")
