import importlib.util
import json
import os

import pytest

from royale_resolver import config, main
from royale_resolver.attestation import AttestationSigner
from royale_resolver.keys import Eip712KeyProvider, generate_eip712_key

TOOLS = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "tools")
PLAYER = "0x" + "ab" * 20


def load_tool(name):
    spec = importlib.util.spec_from_file_location(name, os.path.join(TOOLS, f"{name}.py"))
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def verifier():
    return load_tool("verify_attestation")

def write(tmp_path, attestation):
    path = tmp_path / "attestation.json"
    path.write_text(json.dumps(attestation), encoding="utf-8")
    return str(path)

def stranger_attestation():
    stranger = AttestationSigner(Eip712KeyProvider(generate_eip712_key()), main.SERVICE.signer.domain)
    return stranger, stranger.sign("3", PLAYER, 2).to_dict()


# Verifier defaults to the configured resolver key
def test_configured_resolver_signature_is_valid(verifier, tmp_path):
    att = main.SERVICE.signer.sign("3", PLAYER, 2).to_dict()
    assert verifier.main([write(tmp_path, att)]) == 0

def test_self_named_resolver_is_not_trusted(verifier, tmp_path):
    _, att = stranger_attestation()
    # The attestation names its own signer; that must not be enough
    assert verifier.main([write(tmp_path, att)]) == 1

def test_explicit_resolver_overrides_configured(verifier, tmp_path):
    stranger, att = stranger_attestation()
    assert verifier.main([write(tmp_path, att), stranger.identity]) == 0

def test_no_trusted_identity(verifier, tmp_path, monkeypatch):
    monkeypatch.setattr(config, "RESOLVER_PRIVATE_KEY", "")
    _, att = stranger_attestation()
    assert verifier.main([write(tmp_path, att)]) == 1

def test_usage(verifier):
    assert verifier.main([]) == 2
