import os, sys
import pytest

# Ensure the package is importable without installation
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

TEST_PRIVATE_KEY = "0x" + "11" * 32

# Configuration is read at import time
os.environ.setdefault("RESOLVER_ENV", "test")
os.environ["RESOLVER_PRIVATE_KEY"] = TEST_PRIVATE_KEY
os.environ["SERVER_SECRET"] = "test-server-secret"
os.environ["SIGNER_TYPE"] = "eip712"
os.environ["RATE_LIMIT_MAX_REQUESTS"] = "100000"
os.environ["SETTLEMENT_RPC_URL"] = ""
os.environ["LOG_JSON"] = "false"

from royale_resolver import main
from royale_resolver.main import _startup

_startup()


# Fresh games and rate-limit counters for each test
@pytest.fixture(autouse=True)
def _reset_service():
    main.SERVICE.store.reset()
    main.SERVICE.limiter.reset()
    yield
