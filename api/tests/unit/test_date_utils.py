from datetime import date

import pytest

from storemap.shared.exceptions.sync import DateParseError
from storemap.shared.utils.date_utils import parse_shipment_date


@pytest.mark.parametrize(
    "raw",
    ["2024/03/05", "2024-03-05", "03/05/2024", "2024/3/5", "3/5/2024", " 2024/03/05 "],
)
def test_all_accepted_formats_resolve_to_same_day(raw: str) -> None:
    assert parse_shipment_date(raw) == date(2024, 3, 5)


@pytest.mark.parametrize("raw", ["not-a-date", "", "2024.03.05", "05-03-2024", "2024/13/01"])
def test_unrecognized_formats_raise(raw: str) -> None:
    with pytest.raises(DateParseError) as exc_info:
        parse_shipment_date(raw)
    assert exc_info.value.raw_value == raw
    assert exc_info.value.status_code == 400
