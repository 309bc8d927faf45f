"""
RSA-OAEP credential encryption.

Secrets are stored at rest as "rsa:" + base64(OAEP ciphertext) using SHA-256
for both the OAEP hash and MGF1. The service holds one process-wide key pair,
loaded from configuration or generated once at startup.
"""
import base64
import binascii
import threading
from typing import Optional, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from config import Config
from utils.exceptions import DecryptionFailedError, InvalidInputError, PayloadTooLargeError
from utils.logger import app_logger

ENCRYPTED_PREFIX = "rsa:"
PUBLIC_EXPONENT = 65537
OAEP_HASH_BYTES = hashes.SHA256.digest_size


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None
    )


class RSACrypto:
    """Encrypts and decrypts short secrets with an RSA key pair."""

    def __init__(self, public_key_pem: str, private_key_pem: str):
        self._public_key_pem = public_key_pem
        self._private_key_pem = private_key_pem
        self._public_key = self.load_public_key(public_key_pem)
        self._private_key = self.load_private_key(private_key_pem)

    @classmethod
    def from_config(cls) -> "RSACrypto":
        """
        Build the crypto service from persisted configuration.
        Generates a fresh pair when none is configured and logs it for the operator.
        """
        if Config.has_rsa_keys():
            return cls(Config.RSA_PUBLIC_KEY, Config.RSA_PRIVATE_KEY)

        app_logger.warning("RSA keys not found in environment. Generating new key pair...")
        public_pem, private_pem = cls.generate_key_pair(Config.RSA_KEY_SIZE)
        app_logger.warning("Add these keys to your .env file to keep stored secrets readable:")
        app_logger.warning('RSA_PUBLIC_KEY="%s"', public_pem.replace("\n", "\\n"))
        app_logger.warning('RSA_PRIVATE_KEY="%s"', private_pem.replace("\n", "\\n"))
        return cls(public_pem, private_pem)

    @staticmethod
    def generate_key_pair(key_size: int = 2048) -> Tuple[str, str]:
        """
        Generate an RSA key pair.

        Returns:
            Tuple of (public_key_pem, private_key_pem) in SubjectPublicKeyInfo / PKCS8 form
        """
        private_key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        ).decode("ascii")
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode("ascii")
        return public_pem, private_pem

    @staticmethod
    def load_public_key(public_key_pem: str) -> rsa.RSAPublicKey:
        try:
            key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))
        except (ValueError, TypeError, UnsupportedAlgorithm, AttributeError) as e:
            raise InvalidInputError(f"Invalid RSA public key: {e}") from e
        if not isinstance(key, rsa.RSAPublicKey):
            raise InvalidInputError("Public key is not an RSA key")
        return key

    @staticmethod
    def load_private_key(private_key_pem: str) -> rsa.RSAPrivateKey:
        try:
            key = serialization.load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm, AttributeError) as e:
            raise InvalidInputError(f"Invalid RSA private key: {e}") from e
        if not isinstance(key, rsa.RSAPrivateKey):
            raise InvalidInputError("Private key is not an RSA key")
        return key

    @staticmethod
    def max_plaintext_bytes(public_key: rsa.RSAPublicKey) -> int:
        """OAEP capacity: k - 2*hLen - 2 (190 bytes for 2048-bit keys with SHA-256)."""
        return public_key.key_size // 8 - 2 * OAEP_HASH_BYTES - 2

    @staticmethod
    def encrypt_with_public_key(plaintext: str, public_key) -> str:
        """
        Encrypt plaintext with RSA-OAEP.

        Args:
            plaintext: Non-empty text to encrypt
            public_key: PEM string or loaded RSA public key

        Returns:
            Base64-encoded ciphertext

        Raises:
            InvalidInputError: Plaintext empty or not a string
            PayloadTooLargeError: Plaintext exceeds the key's OAEP capacity
        """
        if not isinstance(plaintext, str) or not plaintext:
            raise InvalidInputError("Invalid plaintext for encryption")

        if isinstance(public_key, str):
            public_key = RSACrypto.load_public_key(public_key)

        data = plaintext.encode("utf-8")
        capacity = RSACrypto.max_plaintext_bytes(public_key)
        if len(data) > capacity:
            raise PayloadTooLargeError(
                f"Plaintext is {len(data)} bytes, RSA-OAEP capacity is {capacity} bytes"
            )

        ciphertext = public_key.encrypt(data, _oaep())
        return base64.b64encode(ciphertext).decode("ascii")

    @staticmethod
    def decrypt_with_private_key(ciphertext_b64: str, private_key) -> str:
        """
        Decrypt base64 RSA-OAEP ciphertext.

        Raises:
            DecryptionFailedError: Malformed input, wrong key or corrupted ciphertext
        """
        if not isinstance(ciphertext_b64, str) or not ciphertext_b64:
            raise DecryptionFailedError("Invalid encrypted data for decryption")

        try:
            if isinstance(private_key, str):
                private_key = RSACrypto.load_private_key(private_key)
            ciphertext = base64.b64decode(ciphertext_b64, validate=True)
            return private_key.decrypt(ciphertext, _oaep()).decode("utf-8")
        except (InvalidInputError, binascii.Error, ValueError) as e:
            raise DecryptionFailedError(f"RSA decryption failed: {e}") from e

    @staticmethod
    def validate_key(key_pem: str, is_private: bool = False) -> bool:
        """Check that a PEM string is a structurally valid RSA key of the expected kind."""
        if not isinstance(key_pem, str) or not key_pem.strip():
            return False
        try:
            if is_private:
                RSACrypto.load_private_key(key_pem)
            else:
                RSACrypto.load_public_key(key_pem)
            return True
        except InvalidInputError:
            return False

    @staticmethod
    def is_encrypted(value: Optional[str]) -> bool:
        return isinstance(value, str) and value.startswith(ENCRYPTED_PREFIX)

    def get_public_key(self) -> str:
        """Public key PEM handed to clients that encrypt secrets before upload."""
        return self._public_key_pem

    def encrypt(self, plaintext: str) -> str:
        return self.encrypt_with_public_key(plaintext, self._public_key)

    def decrypt(self, ciphertext_b64: str) -> str:
        return self.decrypt_with_private_key(ciphertext_b64, self._private_key)

    def encrypt_secret(self, plaintext: str) -> str:
        """Encode a secret for storage: "rsa:" + base64 ciphertext."""
        return ENCRYPTED_PREFIX + self.encrypt(plaintext)

    def decrypt_secret(self, stored: Optional[str]) -> Optional[str]:
        """
        Recover a stored secret.

        Values without the "rsa:" prefix are legacy plaintext and are returned
        unchanged with a warning.
        """
        if not stored:
            return stored

        if not self.is_encrypted(stored):
            app_logger.warning("Stored secret is not RSA-encrypted (legacy plaintext value), re-save it to encrypt")
            return stored

        return self.decrypt(stored[len(ENCRYPTED_PREFIX):])

    def prepare_for_storage(self, secret: Optional[str]) -> Optional[str]:
        """
        Bring a submitted secret into its at-rest form.
        Plain values are encrypted; "rsa:" values must decrypt with this key pair.
        """
        if not secret:
            return secret
        secret = secret.strip()
        if self.is_encrypted(secret):
            self.decrypt_secret(secret)
            return secret
        return self.encrypt_secret(secret)


_rsa_crypto: Optional[RSACrypto] = None
_rsa_lock = threading.Lock()


def get_rsa_crypto() -> RSACrypto:
    """Get the process-wide crypto instance, initializing it once."""
    global _rsa_crypto
    if _rsa_crypto is None:
        with _rsa_lock:
            if _rsa_crypto is None:
                _rsa_crypto = RSACrypto.from_config()
                app_logger.info("RSA key pair loaded")
    return _rsa_crypto


def encrypt_secret(plaintext: str) -> str:
    return get_rsa_crypto().encrypt_secret(plaintext)


def decrypt_secret(stored: Optional[str]) -> Optional[str]:
    return get_rsa_crypto().decrypt_secret(stored)
