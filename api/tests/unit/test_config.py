from storemap.core.config import Settings, get_cors_origins, normalize_database_url, split_csv_setting


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_normalize_database_url_targets_psycopg() -> None:
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_database_url("postgresql+asyncpg://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_database_url("sqlite+aiosqlite:///:memory:") == "sqlite+aiosqlite:///:memory:"


def test_sheet_lists_are_split_and_trimmed() -> None:
    s = _settings(GOOGLE_SHEET_GIDS="1, 2,", GOOGLE_SHEET_NAMES="秋葵,產銷絲瓜")
    assert s.sheet_gids == ["1", "2"]
    assert s.sheet_names == ["秋葵", "產銷絲瓜"]
    assert split_csv_setting("") == []


def test_invalid_schedule_values_fall_back_to_defaults() -> None:
    assert _settings(SCHEDULE_HOUR=25, SCHEDULE_MINUTE=-1).schedule_time == (2, 0)
    assert _settings(SCHEDULE_HOUR=6, SCHEDULE_MINUTE=30).schedule_time == (6, 30)


def test_full_sync_day_outside_range_falls_back_to_first() -> None:
    assert _settings(FULL_SYNC_DAY=31).full_sync_day == 1
    assert _settings(FULL_SYNC_DAY=15).full_sync_day == 15


def test_cors_origins_accepts_star_json_and_csv() -> None:
    assert get_cors_origins("*") == ["*"]
    assert get_cors_origins('["http://a", "http://b"]') == ["http://a", "http://b"]
    assert get_cors_origins("http://a,http://b") == ["http://a", "http://b"]
