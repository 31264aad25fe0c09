"""Branch and repository name helpers."""

import re


def sanitize_branch(branch: str) -> str:
    """Turn a branch name into a directory-name-safe form.

    Only ``/`` is replaced (with ``-``); case, whitespace and length are
    left untouched.
    """
    return branch.replace("/", "-")


def extract_repo_name(repo: str) -> str:
    """Return the repository name from a clone URL, short form or bare name.

    Accepts ``git@host:owner/repo.git``, ``https://host/owner/repo.git``,
    ``owner/repo`` and ``repo``.

    Args:
        repo: The repository reference as typed by the user

    Returns:
        The final path component with any trailing ``.git`` removed
    """
    name = repo.strip().rstrip("/")
    # SSH form: everything after the last ':' is the path
    if ":" in name and "://" not in name:
        name = name.rsplit(":", 1)[1]
    name = name.rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


def is_short_form(repo: str) -> bool:
    """Whether ``repo`` is a GitHub ``owner/repo`` shorthand.

    Anything with a ``/`` and neither ``@`` nor ``:`` counts; a bare
    ``repo`` does not. Local paths also match, so callers cloning should
    check the filesystem first.
    """
    return "/" in repo and "@" not in repo and ":" not in repo


def sanitize_site_name(site_name: str) -> str:
    """Lowercase, map non-alphanumerics to ``_``, collapse and trim underscores."""
    name = re.sub(r"[^a-z0-9]", "_", site_name.lower())
    name = re.sub(r"_+", "_", name)
    return name.strip("_")
