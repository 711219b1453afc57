"""Resolution of the author identity recorded on new events."""

from collections.abc import Callable, Mapping

from git_issue.issue import Identity


def resolve_identity(
    environ: Mapping[str, str],
    git_config: Callable[[str], str | None],
) -> Identity:
    """Work out who is writing, the way git itself would for a commit author.

    GIT_AUTHOR_NAME / GIT_AUTHOR_EMAIL win; otherwise user.name / user.email
    from git config are used. Each part is resolved independently.

    Args:
        environ: Environment variables (usually os.environ)
        git_config: Lookup for git config keys, e.g. GitObjectStore.get_config

    Raises:
        ValueError: If the name or the email cannot be determined
    """
    name = _first_non_empty(environ.get("GIT_AUTHOR_NAME"), git_config("user.name"))
    if name is None:
        msg = "Author name not configured. Set GIT_AUTHOR_NAME or git config user.name"
        raise ValueError(msg)

    email = _first_non_empty(environ.get("GIT_AUTHOR_EMAIL"), git_config("user.email"))
    if email is None:
        msg = "Author email not configured. Set GIT_AUTHOR_EMAIL or git config user.email"
        raise ValueError(msg)

    return Identity(name=name, email=email)


def _first_non_empty(*candidates: str | None) -> str | None:
    for candidate in candidates:
        if candidate is not None and candidate.strip():
            return candidate.strip()
    return None
