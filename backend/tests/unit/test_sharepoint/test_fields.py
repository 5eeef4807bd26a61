"""Tests for image column parsing and attachment matching."""

import pytest

from app.core.sharepoint.fields import (
    FIELD_CANDIDATES,
    file_extension,
    find_attachment,
    guess_content_type,
    image_field_file_name,
    parse_image_field,
    pick_field,
)
from app.core.sharepoint.models import Attachment, ImageFieldValue


class TestParseImageField:
    """Tests for parse_image_field."""

    @pytest.mark.parametrize("value", [None, "", {}, 0])
    def test_empty_values(self, value):
        result = parse_image_field(value)
        assert result == ImageFieldValue()
        assert result.is_empty

    def test_json_string_with_file_name(self):
        value = '{"fileName":"Reserved_ImageAttachment_1.png","originalImageName":"hero"}'

        result = parse_image_field(value)

        assert result.file_name == "Reserved_ImageAttachment_1.png"
        assert result.server_relative_url is None
        assert result.url is None

    def test_plain_url_string(self):
        result = parse_image_field("https://x/sites/s/a/b.png")

        assert result.file_name == "b.png"
        assert result.url == "https://x/sites/s/a/b.png"
        assert result.server_relative_url is None

    def test_plain_file_name(self):
        result = parse_image_field("cover.jpg")

        assert result.file_name == "cover.jpg"
        assert result.url == "cover.jpg"

    def test_server_url_and_relative_url_are_joined(self):
        value = {
            "serverUrl": "https://contoso.sharepoint.com/",
            "serverRelativeUrl": "/sites/UseCases/SiteAssets/a.png",
            "fileName": "a.png",
        }

        result = parse_image_field(value)

        assert result.url == "https://contoso.sharepoint.com/sites/UseCases/SiteAssets/a.png"
        assert result.server_relative_url == "/sites/UseCases/SiteAssets/a.png"
        assert result.file_name == "a.png"

    def test_json_string_with_server_url(self):
        value = (
            '{"serverUrl":"https://contoso.sharepoint.com",'
            '"serverRelativeUrl":"/sites/X/a.png","name":"a.png"}'
        )

        result = parse_image_field(value)

        assert result.url == "https://contoso.sharepoint.com/sites/X/a.png"
        assert result.file_name == "a.png"

    def test_mapping_with_url_only(self):
        result = parse_image_field({"Url": "https://cdn/x.webp"})

        assert result.url == "https://cdn/x.webp"
        assert result.file_name is None

    def test_malformed_json_falls_back_to_plain_string(self):
        result = parse_image_field('{"fileName": ')

        assert result.url == '{"fileName":'
        assert result.server_relative_url is None

    def test_unsupported_type_yields_empty_value(self):
        assert parse_image_field(12345) == ImageFieldValue()

    @pytest.mark.parametrize("value", ["123", "true", "null", " 4.5 ", '"cover.png"', "[1, 2]"])
    def test_scalar_json_strings_yield_empty_value(self, value):
        """Strings that decode as JSON never fall back to the plain-string branch."""
        assert parse_image_field(value) == ImageFieldValue()

    @pytest.mark.parametrize("value", ["123", "null", '"a.png"'])
    def test_scalar_json_strings_have_no_file_name(self, value):
        assert image_field_file_name(value) is None


class TestImageFieldFileName:
    """Tests for the strict file name lookup."""

    def test_json_string(self):
        assert image_field_file_name('{"fileName":"a.png"}') == "a.png"

    def test_json_string_capitalised_key(self):
        assert image_field_file_name('{"FileName":"b.png"}') == "b.png"

    def test_mapping(self):
        assert image_field_file_name({"fileName": "c.png"}) == "c.png"

    @pytest.mark.parametrize("value", [None, "", "cover.png", "https://x/a.png", "{not json"])
    def test_plain_or_invalid_values_yield_none(self, value):
        assert image_field_file_name(value) is None

    def test_json_without_file_name(self):
        assert image_field_file_name('{"serverRelativeUrl":"/a.png"}') is None


class TestPickField:
    """Tests for pick_field."""

    def test_first_present_candidate_wins(self):
        item = {"Cover_x0020_Image": "x", "cover": "y"}
        assert pick_field(item, FIELD_CANDIDATES["cover"]) == "x"

    def test_presence_not_truthiness(self):
        """An empty earlier column shadows data under a later one."""
        item = {"CoverImage": None, "Cover_x0020_Image": '{"fileName":"a.png"}'}
        assert pick_field(item, FIELD_CANDIDATES["cover"]) is None

    def test_no_candidate_present(self):
        assert pick_field({"Title": "x"}, FIELD_CANDIDATES["thumbnail"]) is None

    def test_none_item(self):
        assert pick_field(None, FIELD_CANDIDATES["thumbnail"]) is None


class TestFindAttachment:
    """Tests for exact attachment matching."""

    @pytest.fixture
    def attachments(self):
        return [
            Attachment(file_name="Reserved_ImageAttachment_1.png", server_relative_url="/a/1.png"),
            Attachment(file_name="other.png", server_relative_url="/a/other.png"),
        ]

    def test_exact_match(self, attachments):
        assert find_attachment(attachments, "other.png") is attachments[1]

    def test_no_case_insensitive_match(self, attachments):
        assert find_attachment(attachments, "OTHER.PNG") is None

    def test_no_fallback_to_first(self, attachments):
        assert find_attachment(attachments, "missing.png") is None

    def test_empty_name(self, attachments):
        assert find_attachment(attachments, None) is None

    def test_no_attachments(self):
        assert find_attachment([], "a.png") is None


class TestContentTypes:
    """Tests for extension and MIME type helpers."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("a.png", "image/png"),
            ("a.PNG", "image/png"),
            ("a.webp", "image/webp"),
            ("a.gif", "image/gif"),
            ("a.jpg", "image/jpeg"),
            ("a.jpeg", "image/jpeg"),
            ("a.bmp", "application/octet-stream"),
            ("noext", "application/octet-stream"),
            (None, "application/octet-stream"),
        ],
    )
    def test_guess_content_type(self, name, expected):
        assert guess_content_type(name) == expected

    def test_file_extension(self):
        assert file_extension("Photo.JPEG") == "jpeg"

    def test_file_extension_default(self):
        assert file_extension("noext") == "jpg"
        assert file_extension("noext", default=None) is None
