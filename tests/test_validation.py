import pytest

from cep_lookup import CepValidationError, cep_digits, format_cep, is_valid_cep, validate_cep


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("01001000", "01001000"),
        ("01001-000", "01001000"),
        ("99999-999", "99999999"),
        ("00000000", "00000000"),
    ],
)
def test_valid_shapes_normalize_to_eight_digits(raw, expected):
    assert validate_cep(raw) == expected


def test_hyphen_presence_does_not_change_result():
    assert validate_cep("12345-678") == validate_cep("12345678")


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "0100100",
        "010010000",
        "01001-00",
        "0100-1000",
        "01001--000",
        "01001 000",
        " 01001000",
        "01001000 ",
        "01001000\n",
        "0100A000",
        "abcde-fgh",
        "01.001-000",
        "٠١٠٠١٠٠٠",  # Arabic-Indic digits
        None,
        1001000,
    ],
)
def test_invalid_shapes_raise(raw):
    with pytest.raises(CepValidationError) as excinfo:
        validate_cep(raw)
    assert excinfo.value.cep == raw


def test_is_valid_cep_does_not_raise():
    assert is_valid_cep("01001-000")
    assert not is_valid_cep("01001-0000")


def test_format_cep():
    assert format_cep("01001000") == "01001-000"
    assert format_cep("01001-000") == "01001-000"


def test_cep_digits():
    assert cep_digits("01001-000") == "01001000"
    assert cep_digits(" 01001.000 ") == "01001000"
    assert cep_digits("") == ""
