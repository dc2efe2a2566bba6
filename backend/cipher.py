import base64
import logging
import secrets
import time

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.backends import default_backend
from Crypto.Cipher import ARC4, DES, DES3  # Legacy ciphers from PyCryptodome

from errors import (
    DecryptionError,
    EncryptionError,
    UnsupportedAlgorithmError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class CipherResult:
    """Outcome of one encrypt/decrypt call plus the metadata shown to the user"""

    def __init__(self, text, algorithm, mode, key_bits, input_length, output_length, processing_time):
        self.text = text
        self.algorithm = algorithm
        self.mode = mode
        self.key_bits = key_bits
        self.input_length = input_length
        self.output_length = output_length
        self.processing_time = processing_time

    @property
    def display_algorithm(self):
        return f"{self.algorithm.upper()}-{self.key_bits}"

    @property
    def display_key_size(self):
        return f"{self.key_bits} bits"

    def to_dict(self):
        return {
            'text': self.text,
            'algorithm': self.display_algorithm,
            'mode': self.mode,
            'keySize': self.display_key_size,
            'inputLength': self.input_length,
            'outputLength': self.output_length,
            'processingTime': self.processing_time,
        }

    def to_history(self, operation, input_text):
        """Build the payload accepted by the cipher history store"""
        return {
            'operation': operation,
            'algorithm': self.algorithm,
            'mode': self.mode,
            'keySize': str(self.key_bits),
            'inputLength': self.input_length,
            'outputLength': self.output_length,
            'processingTime': f"{self.processing_time:.3f}",
            'inputText': input_text,
            'outputText': self.text,
        }


class CipherService:
    """Passphrase based text encryption using the OpenSSL salted envelope"""

    SUPPORTED_ALGORITHMS = ['aes', 'des', 'triple-des', 'rc4']
    SUPPORTED_MODES = ['CBC', 'ECB', 'CFB', 'OFB']
    DEFAULT_MODE = 'CBC'
    STREAM_MODE = 'STREAM'

    # Key sizes are counted in 32-bit words
    WORD_BITS = 32
    DEFAULT_KEY_WORDS = {'aes': 8, 'des': 2, 'triple-des': 6, 'rc4': 8}
    AES_VALID_KEY_WORDS = [4, 6, 8]  # AES-128, AES-192, AES-256
    RC4_MIN_KEY_WORDS = 2    # ARC4 accepts 5 to 256 key bytes
    RC4_MAX_KEY_WORDS = 64

    # Block sizes in bytes; RC4 is a stream cipher and has none
    BLOCK_SIZES = {'aes': 16, 'des': 8, 'triple-des': 8, 'rc4': 0}

    # Envelope: b"Salted__" + 8-byte salt + ciphertext, Base64 encoded
    SALT_HEADER = b'Salted__'
    SALT_SIZE = 8

    KEY_ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789!@#$%^&*()'

    @staticmethod
    def derive_key_and_iv(passphrase, salt, key_length, iv_length):
        """OpenSSL EVP_BytesToKey: MD5, one iteration"""
        derived = bytearray()
        block = b''
        while len(derived) < key_length + iv_length:
            digest = hashes.Hash(hashes.MD5(), backend=default_backend())
            digest.update(block + passphrase + salt)
            block = digest.finalize()
            derived += block
        return bytes(derived[:key_length]), bytes(derived[key_length:key_length + iv_length])

    @staticmethod
    def resolve_options(algorithm, options=None):
        """Translate the user's algorithm and advanced options into cipher parameters"""
        if algorithm not in CipherService.SUPPORTED_ALGORITHMS:
            raise UnsupportedAlgorithmError(f"Unsupported algorithm: {algorithm}")

        options = options or {}
        block_size = CipherService.BLOCK_SIZES[algorithm]
        key_words = CipherService.DEFAULT_KEY_WORDS[algorithm]

        key_size = options.get('keySize')
        if key_size:
            if isinstance(key_size, bool) or (isinstance(key_size, float) and not key_size.is_integer()):
                raise ValidationError(f"Invalid key size: {key_size}")
            try:
                key_size = int(key_size)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid key size: {key_size}")
            if key_size <= 0 or key_size % CipherService.WORD_BITS:
                raise ValidationError(f"Key size must be a positive multiple of 32 bits (got {key_size})")
            words = key_size // CipherService.WORD_BITS
            if algorithm == 'aes':
                if words not in CipherService.AES_VALID_KEY_WORDS:
                    raise ValidationError(f"Invalid AES key size: {key_size}. Must be 128, 192 or 256 bits.")
                key_words = words
            elif algorithm == 'rc4':
                if not CipherService.RC4_MIN_KEY_WORDS <= words <= CipherService.RC4_MAX_KEY_WORDS:
                    raise ValidationError(f"Invalid RC4 key size: {key_size}. Must be between 64 and 2048 bits.")
                key_words = words
            # DES and Triple DES keep their fixed key lengths

        if algorithm == 'rc4':
            mode = CipherService.STREAM_MODE
        else:
            mode = CipherService.DEFAULT_MODE
            requested_mode = options.get('mode')
            if requested_mode in CipherService.SUPPORTED_MODES:
                mode = requested_mode
            elif requested_mode:
                logger.warning(f"Unknown mode {requested_mode!r}, falling back to {CipherService.DEFAULT_MODE}")

        iv = None
        iv_text = options.get('iv')
        if iv_text and not isinstance(iv_text, str):
            raise ValidationError("IV must be a text value")
        if iv_text and block_size:
            # Raw text bytes, zero filled or cut to one block
            iv = iv_text.encode('utf-8')[:block_size].ljust(block_size, b'\x00')

        return {
            'algorithm': algorithm,
            'mode': mode,
            'key_length': key_words * 4,
            'block_size': block_size,
            'iv': iv,
        }

    @staticmethod
    def _transform(params, key, iv, data, encrypting):
        """Run the raw cipher over already padded data"""
        algorithm = params['algorithm']
        mode = params['mode']

        if algorithm == 'aes':
            if mode == 'ECB':
                cipher_mode = modes.ECB()
            elif mode == 'CFB':
                cipher_mode = modes.CFB(iv)
            elif mode == 'OFB':
                cipher_mode = modes.OFB(iv)
            else:
                cipher_mode = modes.CBC(iv)
            cipher = Cipher(algorithms.AES(key), cipher_mode, backend=default_backend())
            context = cipher.encryptor() if encrypting else cipher.decryptor()
            return context.update(data) + context.finalize()

        if algorithm == 'rc4':
            cipher = ARC4.new(key)
        else:
            module = DES if algorithm == 'des' else DES3
            if mode == 'ECB':
                cipher = module.new(key, module.MODE_ECB)
            elif mode == 'CFB':
                # Full-block feedback, same as the AES CFB mode
                cipher = module.new(key, module.MODE_CFB, iv=iv, segment_size=params['block_size'] * 8)
            elif mode == 'OFB':
                cipher = module.new(key, module.MODE_OFB, iv=iv)
            else:
                cipher = module.new(key, module.MODE_CBC, iv=iv)
        return cipher.encrypt(data) if encrypting else cipher.decrypt(data)

    @staticmethod
    def _require(payload, key, action, payload_name):
        if not isinstance(payload, str) or not payload:
            raise ValidationError(f"No {payload_name} provided for {action}")
        if not isinstance(key, str) or not key:
            raise ValidationError(f"No key provided for {action}")

    @staticmethod
    def _encrypt(payload, key, params):
        try:
            salt = secrets.token_bytes(CipherService.SALT_SIZE)
            block_size = params['block_size']
            key_bytes, iv = CipherService.derive_key_and_iv(
                key.encode('utf-8'), salt, params['key_length'], block_size
            )
            if params['iv'] is not None:
                iv = params['iv']

            data = payload.encode('utf-8')
            if block_size:
                padder = padding.PKCS7(block_size * 8).padder()
                data = padder.update(data) + padder.finalize()

            ciphertext = CipherService._transform(params, key_bytes, iv, data, encrypting=True)
            return base64.b64encode(CipherService.SALT_HEADER + salt + ciphertext).decode('utf-8')
        except Exception as e:
            logger.error(f"Encryption error: {str(e)}")
            raise EncryptionError(f"Encryption failed: {str(e)}") from e

    @staticmethod
    def _decrypt(ciphertext, key, params):
        header_length = len(CipherService.SALT_HEADER)
        try:
            envelope = base64.b64decode(''.join(ciphertext.split()), validate=True)
            if not envelope.startswith(CipherService.SALT_HEADER) or len(envelope) <= header_length + CipherService.SALT_SIZE:
                raise ValueError("ciphertext is not a salted envelope")
            salt = envelope[header_length:header_length + CipherService.SALT_SIZE]
            body = envelope[header_length + CipherService.SALT_SIZE:]

            block_size = params['block_size']
            key_bytes, iv = CipherService.derive_key_and_iv(
                key.encode('utf-8'), salt, params['key_length'], block_size
            )
            if params['iv'] is not None:
                iv = params['iv']

            data = CipherService._transform(params, key_bytes, iv, body, encrypting=False)
            if block_size:
                unpadder = padding.PKCS7(block_size * 8).unpadder()
                data = unpadder.update(data) + unpadder.finalize()
            plaintext = data.decode('utf-8')
        except Exception as e:
            logger.error(f"Decryption error: {str(e)}")
            raise DecryptionError(f"Decryption failed: {str(e)}") from e

        # Empty output is read as a wrong key or corrupted input. This is a
        # heuristic: a correct key can never produce it because empty
        # plaintext is rejected at encryption time.
        if not plaintext:
            raise DecryptionError("Decryption failed - the key may be incorrect or the ciphertext is invalid")
        return plaintext

    @staticmethod
    def encrypt(payload, key, algorithm='aes', options=None):
        """Encrypt text with a passphrase, returning the Base64 salted envelope"""
        CipherService._require(payload, key, 'encryption', 'text')
        params = CipherService.resolve_options(algorithm, options)
        return CipherService._encrypt(payload, key, params)

    @staticmethod
    def decrypt(ciphertext, key, algorithm='aes', options=None):
        """Decrypt a Base64 salted envelope.

        The key, algorithm, mode, key size and IV must match the ones used
        for encryption. A mismatch either raises DecryptionError (bad padding,
        invalid UTF-8, empty output) or, rarely, returns unreadable text;
        there is no integrity check that could tell the two apart.
        """
        CipherService._require(ciphertext, key, 'decryption', 'encrypted text')
        params = CipherService.resolve_options(algorithm, options)
        return CipherService._decrypt(ciphertext, key, params)

    @staticmethod
    def run_operation(operation, payload, key, algorithm='aes', options=None):
        """Encrypt or decrypt and time the call, returning a CipherResult"""
        if operation == 'encrypt':
            CipherService._require(payload, key, 'encryption', 'text')
        elif operation == 'decrypt':
            CipherService._require(payload, key, 'decryption', 'encrypted text')
        else:
            raise ValidationError(f"Unsupported operation: {operation}")
        params = CipherService.resolve_options(algorithm, options)

        start_time = time.perf_counter()
        if operation == 'encrypt':
            text = CipherService._encrypt(payload, key, params)
        else:
            text = CipherService._decrypt(payload, key, params)
        end_time = time.perf_counter()

        return CipherResult(
            text=text,
            algorithm=algorithm,
            mode=params['mode'],
            key_bits=params['key_length'] * 8,
            input_length=len(payload),
            output_length=len(text),
            processing_time=round(end_time - start_time, 3),
        )

    @staticmethod
    def generate_random_key(length=16):
        """Generate a random passphrase drawn from KEY_ALPHABET"""
        if isinstance(length, bool) or not isinstance(length, int) or length < 1:
            raise ValidationError(f"Key length must be a positive integer (got {length!r})")
        return ''.join(secrets.choice(CipherService.KEY_ALPHABET) for _ in range(length))
