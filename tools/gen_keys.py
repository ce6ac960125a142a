import secrets
import sys

from royale_resolver.keys import generate_eip712_key, generate_ed25519_key_file

key_path = sys.argv[1] if len(sys.argv) > 1 else "secrets/resolver_ed25519_key.json"

private_key = generate_eip712_key()
ed25519_pub = generate_ed25519_key_file(key_path)

print(f"SERVER_SECRET={secrets.token_hex(32)}")
print(f"RESOLVER_PRIVATE_KEY={private_key}")
print(f"ED25519_KEY_PATH={key_path}")
print(f"# ed25519 public key: {ed25519_pub}", file=sys.stderr)
print("Generated resolver keys.", file=sys.stderr)
