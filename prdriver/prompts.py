"""Task text sent to the agent as the conversation's first message."""

from __future__ import annotations

import uuid

DEFAULT_REPO = "github.com/aweeraman/hello"
DEFAULT_BRANCH_PREFIX = "feature/update-hello"
DEFAULT_PR_TITLE = "Update hello greeting"

PR_TASK_TEMPLATE = """You are connected to a git workspace whose remote is {repo}.

Task:
- Create a branch "{branch}" from {base}.
- Edit index.js so it logs "Hello from OpenHands!".
- Commit with message "Update greeting".
- Push the branch to GitHub.
- Open a pull request against {base} with title "{title}".
- Reply with ONLY the PR URL."""


def unique_branch_name(prefix: str = DEFAULT_BRANCH_PREFIX) -> str:
    """Append a short random suffix so repeated runs never collide."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def build_task_message(
    repo: str = DEFAULT_REPO,
    branch: str | None = None,
    title: str = DEFAULT_PR_TITLE,
    base: str = "main",
) -> str:
    return PR_TASK_TEMPLATE.format(
        repo=repo,
        branch=branch or unique_branch_name(),
        base=base,
        title=title,
    )
