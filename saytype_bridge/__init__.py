"""
SayType Bridge Package.

LAN bridge that lets a companion client send recorded audio to the desktop
speech-recognition host and receive the transcript back over HTTP.
"""

from pathlib import Path


def _get_version() -> str:
    """
    Get the package version from package metadata or pyproject.toml.

    Returns:
        Version string (e.g., "0.1.0") or "dev" if unavailable
    """
    # Installed distribution
    try:
        from importlib.metadata import version

        return version("saytype-bridge")
    except Exception:
        pass

    # Source checkout: walk up to the project's pyproject.toml
    try:
        import tomllib

        current = Path(__file__).resolve()
        for parent in current.parents:
            potential_path = parent / "pyproject.toml"
            if potential_path.exists():
                with open(potential_path, "rb") as f:
                    data = tomllib.load(f)
                return data.get("project", {}).get("version", "dev")
    except Exception:
        pass

    return "dev"


__version__ = _get_version()
