"""Tests for request-level dependencies."""

import pytest
from fastapi import HTTPException

from artistlink.api.dependencies import get_current_owner_id, get_platform
from artistlink.domain.entities import Platform
from artistlink.domain.exceptions import AuthenticationError


class TestGetCurrentOwnerId:
    """Test caller identity resolution."""

    def test_returns_stripped_owner(self) -> None:
        assert get_current_owner_id(" user-1 ") == "user-1"

    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_missing_owner_raises(self, header: str | None) -> None:
        with pytest.raises(AuthenticationError):
            get_current_owner_id(header)


class TestGetPlatform:
    """Test {platform} path segment resolution."""

    @pytest.mark.parametrize(
        ("segment", "expected"),
        [("youtube", Platform.YOUTUBE), ("Instagram", Platform.INSTAGRAM)],
    )
    def test_known_platforms(self, segment: str, expected: Platform) -> None:
        assert get_platform(segment) is expected

    def test_unknown_platform_is_404(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            get_platform("tiktok")

        assert exc_info.value.status_code == 404
