import argparse
import asyncio
import json
import sys
import logging
from typing import List, Optional

import aiohttp
from pydantic import ValidationError

from src.application.mirror_service import MirrorService
from src.domain.exceptions import MirrorServiceException
from src.infrastructure.config import load_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mirror public forks into a private organization.")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create a private mirror of a fork")
    create.add_argument("org_id")
    create.add_argument("fork_repo_owner")
    create.add_argument("fork_repo_name")
    create.add_argument("new_repo_name")
    create.add_argument("new_branch_name")

    list_ = commands.add_parser("list", help="List the mirrors of a fork")
    list_.add_argument("org_id")
    list_.add_argument("fork_name")

    edit = commands.add_parser("edit", help="Rename a mirror")
    edit.add_argument("org_id")
    edit.add_argument("mirror_name")
    edit.add_argument("new_mirror_name")

    delete = commands.add_parser("delete", help="Delete a mirror")
    delete.add_argument("org_id")
    delete.add_argument("org_name")
    delete.add_argument("mirror_name")

    return parser


async def run(args: argparse.Namespace, service: MirrorService):
    if args.command == "create":
        return await service.create_mirror(
            args.org_id, args.fork_repo_owner, args.fork_repo_name, args.new_repo_name, args.new_branch_name
        )
    if args.command == "list":
        return await service.list_mirrors(args.org_id, args.fork_name)
    if args.command == "edit":
        return await service.edit_mirror(args.org_id, args.mirror_name, args.new_mirror_name)
    return await service.delete_mirror(args.org_id, args.org_name, args.mirror_name)


def to_json(result) -> str:
    if isinstance(result, list):
        return json.dumps([item.model_dump(mode="json") for item in result], indent=2)
    if hasattr(result, "model_dump"):
        return json.dumps(result.model_dump(mode="json", exclude_none=True), indent=2)
    return json.dumps(result)


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.env_file)
    except MirrorServiceException as e:
        configure_logging()
        logger.error(str(e))
        return 1

    configure_logging(settings.log_level)

    async with aiohttp.ClientSession() as session:
        try:
            service = MirrorService.from_settings(settings, session)
            result = await run(args, service)
        except (MirrorServiceException, ValidationError) as e:
            logger.error(f"{args.command} failed: {e}")
            return 1

    print(to_json(result))
    if args.command == "create" and not result.success:
        return 1
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
