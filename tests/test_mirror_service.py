import unittest
from unittest.mock import AsyncMock, MagicMock

from pydantic import ValidationError

from src.application.mirror_admin import MirrorAdminService
from src.application.mirror_queries import MirrorQueryService
from src.application.mirror_saga import CreateMirrorSaga
from src.application.mirror_service import MirrorService
from src.domain.models import MirrorRequest, MirrorResult
from src.infrastructure.config import Settings


class TestMirrorService(unittest.IsolatedAsyncioTestCase):
    def test_from_settings_wires_components(self) -> None:
        settings = Settings(github_app_id="1", git_host="ghe.example.com", git_timeout_seconds=30)

        service = MirrorService.from_settings(settings, session=MagicMock())

        self.assertIsInstance(service.create_saga, CreateMirrorSaga)
        self.assertIsInstance(service.query_service, MirrorQueryService)
        self.assertIsInstance(service.admin_service, MirrorAdminService)
        self.assertEqual(service.create_saga.git_host, "ghe.example.com")
        self.assertEqual(service.create_saga.git_timeout, 30)

    async def test_create_builds_request(self) -> None:
        saga = AsyncMock()
        saga.create_mirror.return_value = MirrorResult(success=False)
        service = MirrorService(saga, AsyncMock(), AsyncMock())

        await service.create_mirror("acme", "alice", "widget", "widget-mirror", "feature-x")

        saga.create_mirror.assert_awaited_once_with("acme", MirrorRequest(
            fork_repo_owner="alice",
            fork_repo_name="widget",
            new_repo_name="widget-mirror",
            new_branch_name="feature-x",
        ))

    async def test_invalid_branch_name_is_rejected(self) -> None:
        service = MirrorService(AsyncMock(), AsyncMock(), AsyncMock())

        with self.assertRaises(ValidationError):
            await service.create_mirror("acme", "alice", "widget", "widget-mirror", "bad branch")

    async def test_edit_and_delete_delegate_to_admin(self) -> None:
        admin = AsyncMock()
        admin.delete_mirror.return_value = True
        service = MirrorService(AsyncMock(), AsyncMock(), admin)

        await service.edit_mirror("acme", "widget-mirror", "widget-renamed")
        deleted = await service.delete_mirror("acme", "acme", "widget-mirror")

        admin.rename_mirror.assert_awaited_once_with("acme", "widget-mirror", "widget-renamed")
        self.assertTrue(deleted)
