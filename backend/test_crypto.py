"""
Tests for the cipher engine: round trips, option mapping and error handling
"""

import base64

import pytest

from cipher import CipherService
from errors import (
    DecryptionError,
    EncryptionError,
    UnsupportedAlgorithmError,
    ValidationError,
)

PLAINTEXT = 'Hello, World!'
KEY = 'mySecretKey123'
LONG_TEXT = 'The quick brown fox jumps over the lazy dog. ' * 3

BLOCK_ALGORITHMS = ['aes', 'des', 'triple-des']


def test_example_scenario():
    """AES-256 CBC round trip of a short greeting"""
    options = {'keySize': 256, 'mode': 'CBC'}
    encrypted = CipherService.encrypt(PLAINTEXT, KEY, 'aes', options)
    assert encrypted != PLAINTEXT
    assert CipherService.decrypt(encrypted, KEY, 'aes', options) == PLAINTEXT


@pytest.mark.parametrize('algorithm', CipherService.SUPPORTED_ALGORITHMS)
def test_round_trip_default_options(algorithm):
    encrypted = CipherService.encrypt(PLAINTEXT, KEY, algorithm)
    assert CipherService.decrypt(encrypted, KEY, algorithm) == PLAINTEXT


@pytest.mark.parametrize('algorithm', BLOCK_ALGORITHMS)
@pytest.mark.parametrize('mode', CipherService.SUPPORTED_MODES)
@pytest.mark.parametrize('key_size', [128, 192, 256])
def test_round_trip_block_modes(algorithm, mode, key_size):
    options = {'keySize': key_size, 'mode': mode}
    encrypted = CipherService.encrypt(LONG_TEXT, KEY, algorithm, options)
    assert CipherService.decrypt(encrypted, KEY, algorithm, options) == LONG_TEXT


@pytest.mark.parametrize('algorithm', BLOCK_ALGORITHMS)
@pytest.mark.parametrize('mode', ['CBC', 'CFB', 'OFB'])
def test_round_trip_with_explicit_iv(algorithm, mode):
    options = {'mode': mode, 'iv': 'initialvector123'}
    encrypted = CipherService.encrypt(LONG_TEXT, KEY, algorithm, options)
    assert CipherService.decrypt(encrypted, KEY, algorithm, options) == LONG_TEXT


def test_short_iv_is_zero_filled():
    params = CipherService.resolve_options('aes', {'iv': 'abc'})
    assert params['iv'] == b'abc' + b'\x00' * 13
    params = CipherService.resolve_options('des', {'iv': 'abcdefghijkl'})
    assert params['iv'] == b'abcdefgh'


@pytest.mark.parametrize('key_size', [128, 256])
def test_rc4_ignores_block_options(key_size):
    options = {'keySize': key_size, 'mode': 'ECB', 'iv': 'ignored'}
    encrypted = CipherService.encrypt(LONG_TEXT, KEY, 'rc4', options)
    assert CipherService.decrypt(encrypted, KEY, 'rc4', options) == LONG_TEXT
    # The same ciphertext decrypts without the meaningless options
    assert CipherService.decrypt(encrypted, KEY, 'rc4', {'keySize': key_size}) == LONG_TEXT


def test_rc4_output_is_not_padded():
    encrypted = CipherService.encrypt(PLAINTEXT, KEY, 'rc4')
    envelope = base64.b64decode(encrypted)
    assert len(envelope) == 16 + len(PLAINTEXT.encode('utf-8'))


@pytest.mark.parametrize('algorithm,block_size', [('aes', 16), ('des', 8), ('triple-des', 8)])
def test_block_cipher_output_is_padded_salted_envelope(algorithm, block_size):
    encrypted = CipherService.encrypt(PLAINTEXT, KEY, algorithm)
    envelope = base64.b64decode(encrypted)
    assert envelope.startswith(b'Salted__')
    body = envelope[16:]
    assert len(body) % block_size == 0
    assert len(body) > len(PLAINTEXT)


def test_same_input_encrypts_differently():
    first = CipherService.encrypt(PLAINTEXT, KEY, 'aes')
    second = CipherService.encrypt(PLAINTEXT, KEY, 'aes')
    assert first != second


def test_unicode_round_trip():
    text = 'Grüße, 世界! 🔐'
    encrypted = CipherService.encrypt(text, KEY, 'triple-des')
    assert CipherService.decrypt(encrypted, KEY, 'triple-des') == text


def test_unknown_mode_falls_back_to_cbc():
    encrypted = CipherService.encrypt(LONG_TEXT, KEY, 'aes', {'mode': 'XTS'})
    assert CipherService.decrypt(encrypted, KEY, 'aes', {'mode': 'CBC'}) == LONG_TEXT
    assert CipherService.resolve_options('aes', {'mode': 'cbc'})['mode'] == 'CBC'


def test_key_size_is_converted_to_words():
    assert CipherService.resolve_options('aes', {'keySize': 128})['key_length'] == 16
    assert CipherService.resolve_options('aes', {'keySize': '192'})['key_length'] == 24
    assert CipherService.resolve_options('aes')['key_length'] == 32
    assert CipherService.resolve_options('rc4', {'keySize': 128})['key_length'] == 16
    # Fixed key lengths for the DES family
    assert CipherService.resolve_options('des', {'keySize': 256})['key_length'] == 8
    assert CipherService.resolve_options('triple-des', {'keySize': 128})['key_length'] == 24


@pytest.mark.parametrize('key_size', [100, -128, 'big', 256.9, True])
def test_invalid_key_size(key_size):
    with pytest.raises(ValidationError):
        CipherService.encrypt(PLAINTEXT, KEY, 'aes', {'keySize': key_size})


def test_aes_rejects_non_aes_key_size():
    with pytest.raises(ValidationError):
        CipherService.encrypt(PLAINTEXT, KEY, 'aes', {'keySize': 64})


@pytest.mark.parametrize('key_size', [32, 2080, 33554432])
def test_rc4_rejects_out_of_range_key_size(key_size):
    with pytest.raises(ValidationError):
        CipherService.encrypt(PLAINTEXT, KEY, 'rc4', {'keySize': key_size})


def test_rc4_accepts_key_size_bounds():
    for key_size in (64, 2048):
        encrypted = CipherService.encrypt(PLAINTEXT, KEY, 'rc4', {'keySize': key_size})
        assert CipherService.decrypt(encrypted, KEY, 'rc4', {'keySize': key_size}) == PLAINTEXT


def test_whole_float_key_size_is_accepted():
    assert CipherService.resolve_options('aes', {'keySize': 192.0})['key_length'] == 24


def test_derive_long_key():
    key, iv = CipherService.derive_key_and_iv(b'password', b'saltsalt', 256, 0)
    assert isinstance(key, bytes)
    assert len(key) == 256
    assert iv == b''


def test_derive_key_and_iv_is_deterministic():
    salt = b'\x01\x02\x03\x04\x05\x06\x07\x08'
    key, iv = CipherService.derive_key_and_iv(b'password', salt, 32, 16)
    assert len(key) == 32
    assert len(iv) == 16
    assert (key, iv) == CipherService.derive_key_and_iv(b'password', salt, 32, 16)
    assert key != CipherService.derive_key_and_iv(b'passw0rd', salt, 32, 16)[0]


def test_encrypt_empty_text():
    with pytest.raises(ValidationError):
        CipherService.encrypt('', KEY, 'aes')


def test_encrypt_empty_key():
    with pytest.raises(ValidationError):
        CipherService.encrypt(PLAINTEXT, '', 'aes')


def test_decrypt_empty_input():
    with pytest.raises(ValidationError):
        CipherService.decrypt('', KEY, 'aes')
    with pytest.raises(ValidationError):
        CipherService.decrypt('U2FsdGVkX1+abc', '', 'aes')


def test_unsupported_algorithm():
    with pytest.raises(UnsupportedAlgorithmError):
        CipherService.encrypt(PLAINTEXT, KEY, 'unknown-algo')
    with pytest.raises(UnsupportedAlgorithmError):
        CipherService.decrypt('U2FsdGVkX1+abc', KEY, 'blowfish')


def test_validation_errors_are_value_errors():
    with pytest.raises(ValueError):
        CipherService.encrypt('', KEY, 'aes')


@pytest.mark.parametrize('algorithm', CipherService.SUPPORTED_ALGORITHMS)
def test_wrong_key_fails(algorithm):
    encrypted = CipherService.encrypt(LONG_TEXT, KEY, algorithm)
    with pytest.raises(DecryptionError):
        CipherService.decrypt(encrypted, 'notTheRightKey', algorithm)


@pytest.mark.parametrize('ciphertext', ['not base64 at all!', 'SGVsbG8gV29ybGQ=', 'U2FsdGVkX18='])
def test_decrypt_garbage(ciphertext):
    with pytest.raises(DecryptionError):
        CipherService.decrypt(ciphertext, KEY, 'aes')


def test_decrypt_truncated_block():
    encrypted = CipherService.encrypt(LONG_TEXT, KEY, 'aes')
    envelope = base64.b64decode(encrypted)
    truncated = base64.b64encode(envelope[:-3]).decode('utf-8')
    with pytest.raises(DecryptionError):
        CipherService.decrypt(truncated, KEY, 'aes')


def test_encryption_error_wraps_library_failure(monkeypatch):
    def broken(*args, **kwargs):
        raise ValueError('cipher backend unavailable')

    monkeypatch.setattr(CipherService, '_transform', broken)
    with pytest.raises(EncryptionError) as excinfo:
        CipherService.encrypt(PLAINTEXT, KEY, 'aes')
    assert str(excinfo.value).startswith('Encryption failed:')


def test_run_operation_result():
    result = CipherService.run_operation('encrypt', PLAINTEXT, KEY, 'aes', {'keySize': 128, 'mode': 'OFB'})
    data = result.to_dict()
    assert data['algorithm'] == 'AES-128'
    assert data['mode'] == 'OFB'
    assert data['keySize'] == '128 bits'
    assert data['inputLength'] == len(PLAINTEXT)
    assert data['outputLength'] == len(result.text)
    assert data['processingTime'] >= 0

    decrypted = CipherService.run_operation('decrypt', result.text, KEY, 'aes', {'keySize': 128, 'mode': 'OFB'})
    assert decrypted.text == PLAINTEXT


def test_run_operation_rc4_reports_stream_mode():
    result = CipherService.run_operation('encrypt', PLAINTEXT, KEY, 'rc4')
    assert result.mode == 'STREAM'
    assert result.to_dict()['algorithm'] == 'RC4-256'


def test_run_operation_history_payload():
    result = CipherService.run_operation('encrypt', PLAINTEXT, KEY, 'triple-des')
    history = result.to_history('encrypt', PLAINTEXT)
    assert history['operation'] == 'encrypt'
    assert history['algorithm'] == 'triple-des'
    assert history['keySize'] == '192'
    assert history['inputText'] == PLAINTEXT
    assert history['outputText'] == result.text
    assert float(history['processingTime']) >= 0


def test_run_operation_rejects_unknown_operation():
    with pytest.raises(ValidationError):
        CipherService.run_operation('sign', PLAINTEXT, KEY, 'aes')


def test_generate_random_key():
    key = CipherService.generate_random_key(16)
    assert len(key) == 16
    assert all(c in CipherService.KEY_ALPHABET for c in key)
    assert key != CipherService.generate_random_key(16)


def test_generate_random_key_default_and_invalid_length():
    assert len(CipherService.generate_random_key()) == 16
    with pytest.raises(ValidationError):
        CipherService.generate_random_key(0)
    with pytest.raises(ValidationError):
        CipherService.generate_random_key('16')


def test_generated_key_works_as_passphrase():
    key = CipherService.generate_random_key(32)
    encrypted = CipherService.encrypt(PLAINTEXT, key, 'des')
    assert CipherService.decrypt(encrypted, key, 'des') == PLAINTEXT
