from conftest import OWNER
from models.tax import TaxSettingsUpdate


def test_defaults_created_on_first_read(settings_service):
    settings = settings_service.get_settings(OWNER, default_tax_year=2026)
    assert settings.taxpayer_type == "individual"
    assert settings.currency == "NGN"
    assert settings.default_tax_year == 2026
    assert settings.tax_identification_number is None
    assert settings.updated_at is not None


def test_existing_settings_not_recreated(settings_service):
    first = settings_service.get_settings(OWNER, default_tax_year=2026)
    again = settings_service.get_settings(OWNER, default_tax_year=2030)
    assert again == first


def test_partial_update_keeps_other_fields(settings_service):
    settings_service.update_settings(OWNER, TaxSettingsUpdate(tax_identification_number="12345678-0001"), 2026)
    updated = settings_service.update_settings(OWNER, TaxSettingsUpdate(taxpayer_type="company"), 2026)

    assert updated.taxpayer_type == "company"
    assert updated.tax_identification_number == "12345678-0001"
    assert updated.currency == "NGN"
    assert settings_service.get_settings(OWNER, 2026) == updated


def test_empty_tin_clears_it(settings_service):
    settings_service.update_settings(OWNER, TaxSettingsUpdate(tax_identification_number="12345678-0001"), 2026)
    updated = settings_service.update_settings(OWNER, TaxSettingsUpdate(tax_identification_number=""), 2026)
    assert updated.tax_identification_number is None


def test_update_bumps_timestamp(settings_service):
    created = settings_service.get_settings(OWNER, 2026)
    updated = settings_service.update_settings(OWNER, TaxSettingsUpdate(default_tax_year=2025), 2026)
    assert updated.default_tax_year == 2025
    assert updated.updated_at > created.updated_at


def test_settings_are_per_owner(settings_service):
    settings_service.update_settings(OWNER, TaxSettingsUpdate(taxpayer_type="company"), 2026)
    assert settings_service.get_settings("owner-2", 2026).taxpayer_type == "individual"


def test_read_settings_does_not_persist(settings_service):
    settings = settings_service.read_settings(OWNER, default_tax_year=2026)
    assert settings.taxpayer_type == "individual"
    assert settings.default_tax_year == 2026
    assert settings_service.repository.get(OWNER) is None


def test_read_settings_returns_saved(settings_service):
    saved = settings_service.update_settings(OWNER, TaxSettingsUpdate(taxpayer_type="company"), 2026)
    assert settings_service.read_settings(OWNER, 2026) == saved
