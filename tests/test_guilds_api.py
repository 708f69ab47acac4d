"""
Isobel Dashboard - Guilds API Tests
===================================

Tests for GET /api/guilds.
"""

from tests.conftest import (
    GUILD_ID,
    OTHER_GUILD_ID,
    PERM_ADMINISTRATOR,
    PERM_NONE,
    auth_headers,
    guild,
)


class TestListGuilds:
    """Tests for the signed-in user's guild list."""

    def test_unauthenticated(self, client):
        response = client.get("/api/guilds")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_lists_memberships(self, client, seed_user):
        token = seed_user(guilds=[
            guild(GUILD_ID, PERM_ADMINISTRATOR, "Music Lounge"),
            guild(OTHER_GUILD_ID, PERM_NONE, "Other Place"),
        ])

        response = client.get("/api/guilds", headers=auth_headers(token))

        assert response.status_code == 200
        assert response.json() == {"guilds": [
            {"id": GUILD_ID, "name": "Music Lounge", "icon": None, "permissions": PERM_ADMINISTRATOR},
            {"id": OTHER_GUILD_ID, "name": "Other Place", "icon": None, "permissions": PERM_NONE},
        ]}

    def test_only_own_guilds(self, client, seed_user):
        seed_user(discord_id="333333333333333333", guilds=[guild(OTHER_GUILD_ID, PERM_NONE)])
        token = seed_user(guilds=[guild(GUILD_ID, PERM_NONE)])

        guilds = client.get("/api/guilds", headers=auth_headers(token)).json()["guilds"]

        assert [g["id"] for g in guilds] == [GUILD_ID]

    def test_unlinked_account_empty(self, client, seed_user):
        token = seed_user(linked=False)

        response = client.get("/api/guilds", headers=auth_headers(token))

        assert response.status_code == 200
        assert response.json() == {"guilds": []}
