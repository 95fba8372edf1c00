import unittest

from pydantic import ValidationError

from src.domain.models import MirrorRequest


def _request(branch: str) -> MirrorRequest:
    return MirrorRequest(
        fork_repo_owner="alice",
        fork_repo_name="widget",
        new_repo_name="widget-mirror",
        new_branch_name=branch,
    )


class TestMirrorRequestBranchName(unittest.TestCase):
    def test_accepts_ordinary_branch_names(self) -> None:
        for branch in ["feature-x", "users/alice/fix_1", "release-1.2"]:
            with self.subTest(branch=branch):
                self.assertEqual(_request(branch).new_branch_name, branch)

    def test_rejects_names_git_refuses(self) -> None:
        for branch in ["-feature", "a..b", "topic.lock", "topic.", "topic/", "a//b", ".hidden", "a/.b", "x@{1}", "@"]:
            with self.subTest(branch=branch):
                with self.assertRaises(ValidationError):
                    _request(branch)

    def test_rejects_whitespace_and_special_characters(self) -> None:
        for branch in ["bad branch", "a:b", "a~1", "a^"]:
            with self.subTest(branch=branch):
                with self.assertRaises(ValidationError):
                    _request(branch)
