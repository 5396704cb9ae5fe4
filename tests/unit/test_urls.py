"""Unit tests for the public URL codec."""

from dataclasses import replace

import pytest

from app.services.oss.errors import MalformedURL
from app.services.oss.keys import build_object_key, directory_from
from app.services.oss.urls import PublicURLCodec


def test_encode_virtual_host_url(storage_config):
    codec = PublicURLCodec(storage_config)
    assert codec.encode("masjids/x/logo/a.webp") == (
        "https://masjid-assets.oss-ap-southeast-5.aliyuncs.com/masjids/x/logo/a.webp"
    )


def test_endpoint_scheme_is_not_duplicated(storage_config):
    config = replace(storage_config, endpoint="https://oss-ap-southeast-5.aliyuncs.com/")
    codec = PublicURLCodec(config)
    assert codec.encode("a.webp") == "https://masjid-assets.oss-ap-southeast-5.aliyuncs.com/a.webp"


def test_encode_empty_key(storage_config):
    assert PublicURLCodec(storage_config).encode("") == ""


def test_public_base_override(storage_config):
    codec = PublicURLCodec(replace(storage_config, public_base="https://cdn.masjid.id/"))
    url = codec.encode("masjids/x/logo/a.webp")
    assert url == "https://cdn.masjid.id/masjids/x/logo/a.webp"
    assert codec.decode(url) == "masjids/x/logo/a.webp"


def test_public_base_with_path(storage_config):
    codec = PublicURLCodec(replace(storage_config, public_base="https://cdn.masjid.id/assets"))
    url = codec.encode("spam/2024/01/01/000000__a.webp")
    assert url == "https://cdn.masjid.id/assets/spam/2024/01/01/000000__a.webp"
    assert codec.decode(url) == "spam/2024/01/01/000000__a.webp"


def test_decode_foreign_host_falls_back(storage_config):
    codec = PublicURLCodec(replace(storage_config, public_base="https://cdn.masjid.id"))
    assert codec.decode("https://bucket.endpoint/masjids/x/logo/old.webp") == "masjids/x/logo/old.webp"


def test_decode_without_scheme(storage_config):
    codec = PublicURLCodec(storage_config)
    assert codec.decode("bucket.endpoint/a/b.png") == "a/b.png"


@pytest.mark.parametrize("url", ["", "   ", "https://bucket.endpoint", "https://bucket.endpoint/"])
def test_decode_malformed(storage_config, url):
    with pytest.raises(MalformedURL):
        PublicURLCodec(storage_config).decode(url)


@pytest.mark.parametrize("public_base", ["", "https://cdn.masjid.id"])
def test_round_trip_generated_keys(storage_config, public_base):
    codec = PublicURLCodec(replace(storage_config, public_base=public_base))
    for name, parts in [
        ("Foto Masjid.PNG", ["masjids", "0b6f", "logo"]),
        ("laporan.pdf", "masjids/abc/docs"),
        ("a.webp", None),
    ]:
        key = build_object_key(name, prefix="uploads", directory=directory_from(parts))
        assert codec.decode(codec.encode(key)) == key
