"""
Encrypt the platform API key for storage in .env.
Run: python scripts/encrypt_platform_key.py [--env-file PATH]

Reads PLATFORM_API_KEY, reuses the RSA key pair from .env or generates one,
then writes RSA_PUBLIC_KEY, RSA_PRIVATE_KEY and ENCRYPTED_PLATFORM_API_KEY.
"""
import argparse
import sys
from pathlib import Path

from dotenv import dotenv_values, set_key

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.exceptions import GatewayError  # noqa: E402
from utils.logger import mask_key  # noqa: E402
from utils.rsa_crypto import ENCRYPTED_PREFIX, RSACrypto  # noqa: E402

DEFAULT_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"


def escape_pem(pem: str) -> str:
    return pem.strip().replace("\n", "\\n")


def unescape_pem(value: str) -> str:
    return value.replace("\\n", "\n").strip()


def load_or_generate_keys(env_vars: dict) -> tuple[str, str, bool]:
    """Returns (public_pem, private_pem, generated)."""
    public_pem = unescape_pem(env_vars.get("RSA_PUBLIC_KEY") or "")
    private_pem = unescape_pem(env_vars.get("RSA_PRIVATE_KEY") or "")

    if RSACrypto.validate_key(public_pem, False) and RSACrypto.validate_key(private_pem, True):
        return public_pem, private_pem, False

    public_pem, private_pem = RSACrypto.generate_key_pair(2048)
    return public_pem, private_pem, True


def encrypt_platform_key(env_path: Path) -> int:
    print("Platform API Key Encryption")
    print("=" * 40)

    env_vars = dotenv_values(env_path) if env_path.exists() else {}
    platform_key = (env_vars.get("PLATFORM_API_KEY") or "").strip()
    if not platform_key:
        print(f"ERROR: PLATFORM_API_KEY not found in {env_path}")
        print("   Add this line to your .env file: PLATFORM_API_KEY=sk-your-actual-api-key")
        return 1

    print(f"Platform key: {mask_key(platform_key)}")
    public_pem, private_pem, generated = load_or_generate_keys(env_vars)
    print("Generated new RSA key pair" if generated else "Using existing RSA key pair")

    crypto = RSACrypto(public_pem, private_pem)
    try:
        encrypted = crypto.encrypt_secret(platform_key)
    except GatewayError as e:
        print(f"ERROR: {e.message}")
        return 1

    env_path.touch(exist_ok=True)
    set_key(str(env_path), "RSA_PUBLIC_KEY", escape_pem(public_pem))
    set_key(str(env_path), "RSA_PRIVATE_KEY", escape_pem(private_pem))
    set_key(str(env_path), "ENCRYPTED_PLATFORM_API_KEY", encrypted)
    print(f"Updated {env_path}")

    try:
        decrypted = crypto.decrypt_secret(encrypted)
    except GatewayError as e:
        print(f"Decryption test failed: {e.message}")
        return 1

    if decrypted != platform_key:
        print("Decryption test failed: round trip mismatch")
        return 1

    print("Decryption test passed")
    print(f"   Encrypted length: {len(encrypted) - len(ENCRYPTED_PREFIX)} characters")
    print("   Remove PLATFORM_API_KEY from .env once ENCRYPTED_PLATFORM_API_KEY is in place.")
    print("   Keep .env out of version control; the private key decrypts every stored secret.")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Encrypt the platform API key into .env")
    parser.add_argument("--env-file", type=Path, default=DEFAULT_ENV_PATH, help="Path to the .env file")
    args = parser.parse_args()
    return encrypt_platform_key(args.env_file)


if __name__ == "__main__":
    sys.exit(main())
