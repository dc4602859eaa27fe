"""Repositories tracked by the dashboard."""

REPO_OWNERS: dict[str, str] = {
    "TransformerEngine": "NVIDIA",
    "Fuser": "NVIDIA",
    "lightning-thunder": "Lightning-AI",
}

SUPPORTED_REPOS: list[str] = list(REPO_OWNERS)

# Repositories shown on the main dashboard
DASHBOARD_REPOS: list[str] = ["TransformerEngine", "Fuser"]


def get_owner(repo: str) -> str:
    """Return the owning organization of a supported repository."""
    try:
        return REPO_OWNERS[repo]
    except KeyError:
        raise ValueError(
            f"Unsupported repository '{repo}'. "
            f"Supported: {', '.join(SUPPORTED_REPOS)}"
        )


def full_name(repo: str) -> str:
    return f"{get_owner(repo)}/{repo}"


def repo_enable_env_var(repo: str) -> str:
    """Environment variable that disables a repository when set to 'false'."""
    return "ENABLE_" + repo.upper().replace("-", "_")
