"""
Integration test specific fixtures and configurations.
"""

import pytest


def _docker_available() -> bool:
    try:
        import docker

        client = docker.from_env()
        client.ping()
        client.close()
        return True
    except Exception:
        return False


def pytest_collection_modifyitems(config, items):
    """Skip tests that need Docker when no daemon is reachable."""
    if _docker_available():
        return

    skip_docker = pytest.mark.skip(reason="Docker daemon not available")
    for item in items:
        if "docker_required" in item.keywords:
            item.add_marker(skip_docker)
