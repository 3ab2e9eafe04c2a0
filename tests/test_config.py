import pytest
from pydantic import ValidationError

from clinic_backend.core.config import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, database_url="sqlite+aiosqlite://", secret_key="x", **overrides)


def test_granularity_defaults_to_thirty_minutes():
    assert _settings().slot_granularity_minutes == 30


@pytest.mark.parametrize("granularity", [0, -15])
def test_granularity_must_be_positive(granularity):
    with pytest.raises(ValidationError):
        _settings(slot_granularity_minutes=granularity)


def test_admin_emails_are_normalized():
    settings = _settings(admin_emails=" Admin@ClinicMail.com, ,ops@clinicmail.com")
    assert settings.admin_emails_list == ["admin@clinicmail.com", "ops@clinicmail.com"]
