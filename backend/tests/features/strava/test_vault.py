"""
Tests for TokenVault and TokenCipher.
"""

from datetime import datetime, timedelta
from urllib.parse import parse_qs

import pytest

from tempo_guide.features.strava import StravaToken, TokenCipher, TokenVault
from tempo_guide.features.strava.vault import token_expiry
from tempo_guide.shared.errors import NotConnected, PersistenceError, RefreshFailed

TOKEN_PATH = "/oauth/token"


@pytest.fixture
def vault(db, oauth, cipher, clock):
    return TokenVault(db, oauth, cipher, clock=clock)


async def _stored(vault, db, user_id="user-1"):
    record = await vault.store_tokens(user_id, {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "expires_in": 3600,
        "athlete": {"id": 777},
    })
    await db.commit()
    return record


# =============================================================================
# Cipher
# =============================================================================

class TestTokenCipher:
    """Tests for encrypted-at-rest token encoding."""

    def test_encoded_value_hides_token(self, cipher):
        encoded = cipher.encode("secret-access-token")
        assert "secret-access-token" not in encoded
        assert cipher.decode(encoded) == "secret-access-token"

    def test_tampered_value_is_rejected(self, cipher):
        encoded = cipher.encode("secret-access-token")
        tampered = encoded[:20] + ("B" if encoded[20] == "A" else "A") + encoded[21:]
        with pytest.raises(PersistenceError):
            cipher.decode(tampered)

    def test_other_key_cannot_decode(self, cipher):
        other = TokenCipher(TokenCipher.generate_key())
        with pytest.raises(PersistenceError):
            other.decode(cipher.encode("secret-access-token"))

    def test_missing_key(self):
        with pytest.raises(ValueError):
            TokenCipher("")


# =============================================================================
# Expiry
# =============================================================================

class TestTokenExpiry:
    """Tests for token_expiry."""

    def test_prefers_expires_in(self):
        now = datetime(2025, 3, 1, 12, 0)
        assert token_expiry({"expires_in": 600, "expires_at": 0}, now) == now + timedelta(minutes=10)

    def test_epoch_expires_at(self):
        now = datetime(2025, 3, 1, 12, 0)
        assert token_expiry({"expires_at": 1740830400}, now) == datetime(2025, 3, 1, 12, 0)

    def test_missing_expiry_is_already_expired(self):
        now = datetime(2025, 3, 1, 12, 0)
        assert token_expiry({}, now) == now


# =============================================================================
# Vault
# =============================================================================

class TestStoreTokens:
    """Tests for TokenVault.store_tokens."""

    async def test_stores_ciphertext_only(self, vault, db, cipher, clock):
        record = await _stored(vault, db)

        assert record.strava_athlete_id == "777"
        assert record.access_token_encoded != "access-1"
        assert cipher.decode(record.access_token_encoded) == "access-1"
        assert cipher.decode(record.refresh_token_encoded) == "refresh-1"
        assert record.expires_at == clock.now + timedelta(hours=1)

    async def test_second_store_overwrites_single_row(self, vault, db, cipher):
        await _stored(vault, db)
        await vault.store_tokens("user-1", {
            "access_token": "access-2",
            "refresh_token": "refresh-2",
            "expires_in": 3600,
        })
        await db.commit()

        rows = (await db.execute(
            StravaToken.__table__.select().where(StravaToken.user_id == "user-1")
        )).all()
        assert len(rows) == 1
        record = await vault.get_record("user-1")
        assert cipher.decode(record.access_token_encoded) == "access-2"
        # Athlete id survives a response without an athlete block
        assert record.strava_athlete_id == "777"


class TestGetValidAccessToken:
    """Tests for TokenVault.get_valid_access_token."""

    async def test_not_connected(self, vault):
        with pytest.raises(NotConnected):
            await vault.get_valid_access_token("nobody")

    async def test_returns_stored_token_while_valid(self, vault, db, strava):
        await _stored(vault, db)

        assert await vault.get_valid_access_token("user-1") == "access-1"
        assert strava.calls(TOKEN_PATH) == []

    async def test_refreshes_expired_token(self, vault, db, strava, clock, cipher, make_token_response):
        await _stored(vault, db)
        clock.advance(hours=1)
        strava.reply("POST", TOKEN_PATH, 200, make_token_response(
            access_token="access-2", refresh_token="refresh-2", expires_in=21600
        ))

        token = await vault.get_valid_access_token("user-1")

        assert token == "access-2"
        sent = parse_qs(strava.calls(TOKEN_PATH)[0].content.decode())
        assert sent["grant_type"] == ["refresh_token"]
        assert sent["refresh_token"] == ["refresh-1"]

        record = await vault.get_record("user-1")
        assert cipher.decode(record.access_token_encoded) == "access-2"
        assert cipher.decode(record.refresh_token_encoded) == "refresh-2"
        assert record.expires_at == clock.now + timedelta(hours=6)

    async def test_refresh_failure_leaves_tokens_untouched(self, vault, db, strava, clock, cipher):
        record = await _stored(vault, db)
        old_expiry = record.expires_at
        clock.advance(hours=2)
        strava.reply("POST", TOKEN_PATH, 400, {"message": "Bad Request"})

        with pytest.raises(RefreshFailed):
            await vault.get_valid_access_token("user-1")

        record = await vault.get_record("user-1")
        assert cipher.decode(record.access_token_encoded) == "access-1"
        assert cipher.decode(record.refresh_token_encoded) == "refresh-1"
        assert record.expires_at == old_expiry

    @pytest.mark.parametrize("body", [
        {"refresh_token": "refresh-2", "expires_in": 21600},
        {"access_token": "access-2", "expires_in": 21600},
        {"access_token": "", "refresh_token": "refresh-2"},
    ])
    async def test_incomplete_refresh_response(self, vault, db, strava, clock, cipher, body):
        await _stored(vault, db)
        clock.advance(hours=2)
        strava.reply("POST", TOKEN_PATH, 200, body)

        with pytest.raises(RefreshFailed):
            await vault.get_valid_access_token("user-1")

        record = await vault.get_record("user-1")
        assert cipher.decode(record.access_token_encoded) == "access-1"
        assert cipher.decode(record.refresh_token_encoded) == "refresh-1"


class TestDelete:
    """Tests for TokenVault.delete."""

    async def test_delete(self, vault, db):
        await _stored(vault, db)

        assert await vault.delete("user-1") is True
        await db.commit()

        assert await vault.get_record("user-1") is None
        assert await vault.delete("user-1") is False
