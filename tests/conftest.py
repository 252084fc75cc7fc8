"""Test configuration and fixtures for the library lending service.

1. Isolated test databases - each test gets a fresh SQLite file
2. Configuration overrides - settings that never touch the working directory
3. Global service patching - tools and resources run against the test database
"""

import os
from collections.abc import Generator
from pathlib import Path

import logfire
import pytest

import library_lending.inventory as inventory_module
from library_lending.config import ServerConfig, reset_config
from library_lending.database.session import DatabaseManager
from library_lending.inventory import InventoryService
from library_lending.models.views import CreateBookRequest

# === Tracing ===


@pytest.fixture(scope="session", autouse=True)
def local_tracing() -> None:
    """Keep spans in-process for the whole run."""
    logfire.configure(send_to_logfire=False, console=False)


# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path for each test."""
    return tmp_path / "test_library.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def db_manager(test_database_url: str) -> Generator[DatabaseManager, None, None]:
    """A database manager with the schema created."""
    manager = DatabaseManager(test_database_url)
    manager.init_database()

    yield manager

    manager.close()


@pytest.fixture
def service(db_manager: DatabaseManager) -> InventoryService:
    return InventoryService(db_manager, lock_timeout=5)


@pytest.fixture
def global_service(
    service: InventoryService, monkeypatch: pytest.MonkeyPatch
) -> InventoryService:
    """Install `service` as the global inventory service used by MCP handlers."""
    monkeypatch.setattr(inventory_module, "_service", service)
    return service


# === Configuration Fixtures ===


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove LIBRARY_LENDING_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("LIBRARY_LENDING_"):
            monkeypatch.delenv(key)


@pytest.fixture
def test_config(test_db_path: Path, clean_env) -> Generator[ServerConfig, None, None]:
    """Provide a test-specific server configuration."""
    reset_config()

    config = ServerConfig(
        server_name="test-library-lending",
        server_version="0.0.1-test",
        database_path=test_db_path,
        debug=True,
        log_level="DEBUG",
        enable_tracing=False,
    )

    yield config

    reset_config()


# === Test Data Fixtures ===


@pytest.fixture
def dune_request() -> CreateBookRequest:
    return CreateBookRequest(
        title="Dune",
        author="Frank Herbert",
        year=1965,
        isbn="9780441013593",
        copies=2,
    )


@pytest.fixture
def sample_books(service: InventoryService) -> dict[str, object]:
    """Three books covering distinct titles, authors and ISBNs."""
    return {
        "dune": service.create(
            {
                "title": "Dune",
                "author": "Frank Herbert",
                "year": 1965,
                "isbn": "9780441013593",
                "copies": 2,
            }
        ),
        "foundation": service.create(
            {
                "title": "Foundation",
                "author": "Isaac Asimov",
                "year": 1951,
                "isbn": "0553293354",
                "copies": 1,
            }
        ),
        "neuromancer": service.create(
            {
                "title": "Neuromancer",
                "author": "William Gibson",
                "year": 1984,
                "isbn": "9780441569595",
                "copies": 0,
            }
        ),
    }
