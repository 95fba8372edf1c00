import json
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from src.domain.exceptions import InternalServiceError
from src.domain.models import MirrorRepository, MirrorResult
from src.infrastructure.config import Settings
from src.main import build_parser, main, run, to_json


class TestCommandLine(unittest.IsolatedAsyncioTestCase):
    async def test_create_dispatches_to_service(self) -> None:
        service = AsyncMock()
        service.create_mirror.return_value = MirrorResult(success=False)
        args = build_parser().parse_args(["create", "acme", "alice", "widget", "widget-mirror", "feature-x"])

        result = await run(args, service)

        service.create_mirror.assert_awaited_once_with("acme", "alice", "widget", "widget-mirror", "feature-x")
        self.assertFalse(result.success)

    async def test_delete_dispatches_to_service(self) -> None:
        service = AsyncMock()
        service.delete_mirror.return_value = True
        args = build_parser().parse_args(["delete", "acme", "acme", "widget-mirror"])

        self.assertTrue(await run(args, service))
        service.delete_mirror.assert_awaited_once_with("acme", "acme", "widget-mirror")

    def test_failed_create_serializes_without_data(self) -> None:
        self.assertEqual(json.loads(to_json(MirrorResult(success=False))), {"success": False})

    def test_list_serializes_each_mirror(self) -> None:
        mirror = MirrorRepository(id=1, name="widget-mirror", full_name="acme-private/widget-mirror",
                                  owner="acme-private")

        payload = json.loads(to_json([mirror]))

        self.assertEqual(payload[0]["name"], "widget-mirror")

    async def test_main_returns_error_status_on_service_failure(self) -> None:
        service = AsyncMock()
        service.list_mirrors.side_effect = InternalServiceError("Failed to fetch mirrors")

        with patch("src.main.load_settings", return_value=Settings(github_app_id="1")), \
                patch("src.main.configure_logging"), \
                patch("src.main.MirrorService.from_settings", MagicMock(return_value=service)):
            status = await main(["list", "acme", "widget"])

        self.assertEqual(status, 1)
