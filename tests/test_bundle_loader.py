"""Tests for bundle fetching and parsing"""

import pytest

from context_deploy.api.exceptions import ValidationError
from context_deploy.services.bundle_loader import LocalBundleFetcher, parse_bundle


class TestParseBundle:

    def test_json(self):
        assert parse_bundle(b'{"settings": {"fontSize": 14}}') == {"settings": {"fontSize": 14}}

    def test_yaml(self):
        data = b"settings:\n  fontSize: 14\nai-config: |\n  Prefer pytest\n"
        assert parse_bundle(data) == {"settings": {"fontSize": 14}, "ai-config": "Prefer pytest\n"}

    def test_content_wrapper(self):
        assert parse_bundle(b'{"name": "team", "content": {"settings": {}}}') == {"settings": {}}

    @pytest.mark.parametrize("data", [b"[1, 2]", b"just text", b"\xff\xfe"])
    def test_rejects_non_mappings(self, data):
        with pytest.raises(ValidationError):
            parse_bundle(data)


@pytest.mark.asyncio
async def test_local_fetcher(tmp_path):
    bundle = tmp_path / "bundle.json"
    bundle.write_bytes(b"{}")
    assert await LocalBundleFetcher().fetch(str(bundle)) == b"{}"


@pytest.mark.asyncio
async def test_local_fetcher_missing_file(tmp_path):
    with pytest.raises(OSError):
        await LocalBundleFetcher().fetch(str(tmp_path / "missing.json"))
