"""
Unit Tests - Submission Validation
"""
import pytest

from webhub.quality.validators import (
    SubmissionValidator,
    create_submission_validator,
    parse_tags,
    sanitize_string,
    validate_email,
    validate_submission,
    validate_webapp_url,
)


def valid_submission(**overrides):
    data = {
        "name": "Pixel Forge",
        "url": "https://pixelforge.app",
        "category": "design",
        "description_short": "Browser-based pixel art editor with layers",
    }
    data.update(overrides)
    return data


class TestSubmissionValidator:
    """Tests for the submission rule suite"""

    def test_valid_submission_passes(self):
        result = validate_submission(valid_submission())

        assert result.valid
        assert result.errors == []

    @pytest.mark.parametrize("length", [20, 21, 199, 200])
    def test_short_description_bounds_pass(self, length):
        """Lengths 20 and 200 are both inside the allowed range"""
        result = validate_submission(valid_submission(description_short="x" * length))

        assert result.valid

    @pytest.mark.parametrize("length", [0, 19, 201])
    def test_short_description_out_of_range_fails(self, length):
        result = validate_submission(valid_submission(description_short="x" * length))

        assert not result.valid
        assert result.errors == ["Short description must be between 20 and 200 characters"]

    def test_all_failures_reported_in_order(self):
        """Every failing rule is reported, in field order"""
        result = validate_submission({
            "name": "ab",
            "url": "http://example.com",
            "category": "music",
            "description_short": "short",
            "github_url": "https://gitlab.com/me/repo",
            "video_url": "https://vimeo.com/123",
        })

        assert result.errors == [
            "Name must be between 3 and 100 characters",
            "URL must use HTTPS",
            "Invalid category",
            "Short description must be between 20 and 200 characters",
            "GitHub URL must be from github.com",
            "Video URL must be from YouTube",
        ]

    def test_optional_links_accepted(self):
        result = validate_submission(valid_submission(
            github_url="https://github.com/me/pixelforge",
            video_url="https://youtu.be/abc123",
        ))

        assert result.valid

    def test_unparseable_optional_link(self):
        result = validate_submission(valid_submission(github_url="not a url"))

        assert result.errors == ["Invalid GitHub URL"]

    @pytest.mark.parametrize("image_url,valid", [
        ("https://cdn.example.com/shot.png", True),
        ("http://cdn.example.com/shot.png", True),
        ("data:image/png;base64,AAAA", False),
        ("shot.png", False),
    ])
    def test_image_link(self, image_url, valid):
        result = validate_submission(valid_submission(image_url=image_url))

        assert result.valid is valid
        assert result.errors == ([] if valid else ["Invalid image URL"])

    def test_custom_validator(self):
        """Checks can be composed on a bare validator"""
        validator = SubmissionValidator().add_enum_check("category", ["a", "b"], "bad category")

        assert validator.validate({"category": "a"}).valid
        assert validator.validate({"category": "c"}).errors == ["bad category"]

    def test_factory_builds_independent_validators(self):
        first = create_submission_validator()
        second = create_submission_validator()

        assert first is not second
        assert first.validate(valid_submission()).to_dict() == {"valid": True, "errors": []}


class TestUrlValidation:
    """Tests for webapp URL rules"""

    @pytest.mark.parametrize("url,error", [
        ("http://example.com", "URL must use HTTPS"),
        ("https://localhost:3000", "Local URLs not allowed"),
        ("https://127.0.0.1", "Local URLs not allowed"),
        ("https://10.1.2.3/app", "Local URLs not allowed"),
        ("https://172.20.0.5", "Local URLs not allowed"),
        ("https://192.168.1.10", "Local URLs not allowed"),
        ("javascript:alert(1)", "Protocol not allowed"),
        ("data:text/html,hi", "Protocol not allowed"),
        ("file:///etc/passwd", "Protocol not allowed"),
        ("not a url", "Invalid URL format"),
        ("", "Invalid URL format"),
        (None, "Invalid URL format"),
    ])
    def test_rejected_urls(self, url, error):
        assert validate_webapp_url(url) == (False, error)

    @pytest.mark.parametrize("url", [
        "https://example.com",
        "https://app.example.com/path?q=1",
        "https://172.32.0.1",
        "https://8.8.8.8",
    ])
    def test_accepted_urls(self, url):
        assert validate_webapp_url(url) == (True, None)


class TestSanitizeString:
    """Tests for the input sanitizer"""

    def test_trims_and_strips_angle_brackets(self):
        assert sanitize_string("  <b>bold</b>  ") == "bbold/b"

    def test_caps_length(self):
        assert len(sanitize_string("a" * 5000)) == 1000

    @pytest.mark.parametrize("value", [None, 42, ["x"], {"a": 1}])
    def test_non_strings_become_empty(self, value):
        assert sanitize_string(value) == ""


class TestParseTags:
    """Tests for tag parsing"""

    def test_normalizes_and_deduplicates(self):
        assert parse_tags(" Design, design ,TOOLS,, ai ") == ["design", "tools", "ai"]

    def test_drops_overlong_tags(self):
        assert parse_tags("ok," + "x" * 31) == ["ok"]

    def test_caps_at_ten(self):
        tags = parse_tags(",".join(f"t{i}" for i in range(15)))

        assert tags == [f"t{i}" for i in range(10)]

    def test_accepts_list(self):
        assert parse_tags(["A", "b", "a"]) == ["a", "b"]

    @pytest.mark.parametrize("raw", [None, "", " , ,"])
    def test_empty_input(self, raw):
        assert parse_tags(raw) == []


class TestValidateEmail:

    @pytest.mark.parametrize("email,expected", [
        ("ada@example.com", True),
        ("a.b+c@sub.example.org", True),
        ("no-at-sign.com", False),
        ("two@@example.com", False),
        ("spaces in@example.com", False),
        ("missing@tld", False),
        (None, False),
    ])
    def test_shapes(self, email, expected):
        assert validate_email(email) is expected
