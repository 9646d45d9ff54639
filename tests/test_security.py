"""Tests for authentication helpers."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from dbpower.infra.platform import PlatformAuthClient
from dbpower.v1.core.exceptions import ConfigurationError, UnauthorizedError, UpstreamError
from dbpower.v1.core.security import (
    extract_bearer_token,
    find_profile_by_api_key,
    get_current_user,
    keys_match,
    require_admin_key,
    require_service_role,
)


class TestBearerToken:
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("BEARER   abc  ", "abc"),
            ("Basic abc", None),
            ("Bearer ", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected

    def test_keys_match(self):
        assert keys_match("secret", "secret")
        assert not keys_match("secret", "secreT")


class TestSharedKeys:
    async def test_service_role_accepted(self, test_settings):
        principal = await require_service_role(
            "Bearer test-service-role-key", test_settings
        )
        assert principal.roles == ["service_role"]

    async def test_service_role_not_configured(self, test_settings):
        settings = test_settings.model_copy(update={"supabase_service_role_key": ""})

        with pytest.raises(ConfigurationError, match="SUPABASE_SERVICE_ROLE_KEY"):
            await require_service_role("Bearer anything", settings)

    async def test_admin_key_rejected(self, test_settings):
        with pytest.raises(UnauthorizedError, match="Invalid admin key"):
            await require_admin_key("Bearer test-service-role-key", test_settings)

    async def test_admin_key_not_configured(self, test_settings):
        settings = test_settings.model_copy(update={"dbpower_admin_key": ""})

        with pytest.raises(ConfigurationError, match="DBPOWER_ADMIN_KEY"):
            await require_admin_key("Bearer test-admin-key", settings)


class TestCurrentUser:
    async def test_missing_token(self):
        with pytest.raises(UnauthorizedError, match="Missing token"):
            await get_current_user(None, MagicMock())

    async def test_rejected_token(self):
        auth_client = MagicMock()
        auth_client.get_user = AsyncMock(return_value=None)

        with pytest.raises(UnauthorizedError, match="Invalid token"):
            await get_current_user("Bearer t", auth_client)


class TestUserApiKeyLookup:
    async def test_unknown_key(self, mock_session):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_session.execute.return_value = result

        assert await find_profile_by_api_key(mock_session, "dbp_unknown") is None
        mock_session.execute.assert_awaited_once()
