from datetime import datetime
from typing import Any, Dict, Optional
from src.domain.models import MirrorRepository

FORK_PROPERTY = "fork"


def _parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


class GitHubTranslator:
    """
    Anti-corruption layer that translates raw GitHub REST repository payloads into MirrorRepository instances.
    """

    @staticmethod
    def to_domain(raw_repo: Dict[str, Any]) -> MirrorRepository:
        """
        Transforms a raw GitHub REST repository object into a MirrorRepository.

        Args:
            raw_repo (Dict[str, Any]): Repository JSON from the create, update, get or search endpoints.

        Returns:
            MirrorRepository: The domain model instance representing the mirror.
        """
        if raw_repo.get('id') is None or not raw_repo.get('name'):
            raise ValueError("id and name are required to build MirrorRepository.")

        owner_data = raw_repo.get('owner') or {}
        # Search results omit custom_properties; create/get include them when set
        custom_properties = raw_repo.get('custom_properties') or {}

        return MirrorRepository(
            id=raw_repo['id'],
            name=raw_repo['name'],
            full_name=raw_repo.get('full_name') or f"{owner_data.get('login', '')}/{raw_repo['name']}",
            owner=owner_data.get('login', ''),
            private=raw_repo.get('private', True),
            html_url=raw_repo.get('html_url'),
            description=raw_repo.get('description'),
            default_branch=raw_repo.get('default_branch'),
            fork=custom_properties.get(FORK_PROPERTY),
            created_at=_parse_timestamp(raw_repo.get('created_at')),
            updated_at=_parse_timestamp(raw_repo.get('updated_at')),
        )
