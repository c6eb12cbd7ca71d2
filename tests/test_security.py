from code_reviewer.utils.security import build_signature, verify_signature

SECRET = "s3cr3t"
PAYLOAD = b'{"action":"opened","number":7}'


class TestBuildSignature:
    def test_has_prefix_and_hex_digest(self):
        signature = build_signature(SECRET, PAYLOAD)
        assert signature.startswith("sha256=")
        assert len(signature) == len("sha256=") + 64

    def test_known_digest(self):
        # HMAC-SHA256("key", "The quick brown fox jumps over the lazy dog")
        assert build_signature("key", b"The quick brown fox jumps over the lazy dog") == (
            "sha256=f7bc83f430538424b13298e6aa6fb143ef4d59a14946175997479dbc2d1a3cd8"
        )


class TestVerifySignature:
    def test_valid_signature(self):
        assert verify_signature(PAYLOAD, build_signature(SECRET, PAYLOAD), SECRET)

    def test_tampered_payload_byte(self):
        signature = build_signature(SECRET, PAYLOAD)
        tampered = bytearray(PAYLOAD)
        tampered[2] ^= 0x01
        assert not verify_signature(bytes(tampered), signature, SECRET)

    def test_tampered_signature_byte(self):
        signature = build_signature(SECRET, PAYLOAD)
        last = "0" if signature[-1] != "0" else "1"
        assert not verify_signature(PAYLOAD, signature[:-1] + last, SECRET)

    def test_wrong_secret(self):
        assert not verify_signature(PAYLOAD, build_signature("other", PAYLOAD), SECRET)

    def test_missing_header(self):
        assert not verify_signature(PAYLOAD, None, SECRET)
        assert not verify_signature(PAYLOAD, "", SECRET)

    def test_unset_secret_fails_closed(self):
        signature = build_signature("", PAYLOAD)
        assert not verify_signature(PAYLOAD, signature, "")
        assert not verify_signature(PAYLOAD, signature, None)

    def test_length_mismatch_is_false_not_error(self):
        assert not verify_signature(PAYLOAD, "sha256=abc", SECRET)
        assert not verify_signature(PAYLOAD, build_signature(SECRET, PAYLOAD) + "00", SECRET)

    def test_non_ascii_header(self):
        assert not verify_signature(PAYLOAD, "sha256=" + "é" * 64, SECRET)

    def test_digest_without_prefix_is_accepted(self):
        digest = build_signature(SECRET, PAYLOAD)[len("sha256="):]
        assert verify_signature(PAYLOAD, digest, SECRET)

    def test_reserialized_payload_does_not_verify(self):
        body = b'{"action": "opened",  "number": 7}'
        signature = build_signature(SECRET, body)
        assert not verify_signature(b'{"action":"opened","number":7}', signature, SECRET)
