from vigilance.compliance.encryption import DECRYPTION_FAILED, FieldEncryptor
from vigilance.compliance.models import PHIField, PHIFieldType


class TestFieldEncryptor:
    def test_encrypt_hides_and_decrypt_restores(self) -> None:
        encryptor = FieldEncryptor(FieldEncryptor.generate_key())
        token = encryptor.encrypt("123-45-6789")
        assert "123-45-6789" not in token
        assert encryptor.decrypt(token) == "123-45-6789"

    def test_foreign_token_fails_softly(self) -> None:
        token = FieldEncryptor(FieldEncryptor.generate_key()).encrypt("secret")
        other = FieldEncryptor(FieldEncryptor.generate_key())
        assert other.decrypt(token) == DECRYPTION_FAILED
        assert other.decrypt("garbage") == DECRYPTION_FAILED

    def test_encrypt_fields_marks_copies(self) -> None:
        encryptor = FieldEncryptor(FieldEncryptor.generate_key())
        original = PHIField(field=PHIFieldType.SSN, value="123-45-6789")
        [encrypted] = encryptor.encrypt_fields([original])
        assert encrypted.is_encrypted is True
        assert encrypted.value != original.value
        assert original.is_encrypted is False
        assert encryptor.decrypt(encrypted.value) == "123-45-6789"

    def test_already_encrypted_fields_are_kept(self) -> None:
        encryptor = FieldEncryptor(FieldEncryptor.generate_key())
        field = PHIField(field=PHIFieldType.SSN, value="token", is_encrypted=True)
        assert encryptor.encrypt_fields([field]) == [field]
