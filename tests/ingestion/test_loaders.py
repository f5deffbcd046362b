import pandas as pd
import pytest

from prospect_triage.ingestion.loaders import UnsupportedFileTypeError, load_prospect_rows
from prospect_triage.models import Prospect, ProspectSource, ProspectStatus


@pytest.fixture()
def sample_dataframe():
    return pd.DataFrame(
        [
            {
                "Prospect ID": 101,
                "Address": "Av. Reforma 222, CDMX",
                "Owner": "Lucía Méndez",
                "Price": 850000,
                "Estimate": 910000,
                "Source": "mercadolibre",
                "Status": "new",
                "Score": 87,
            },
            {
                "Prospect ID": 102,
                "Address": "Calle Roble 14",
                "Owner": "",
                "Price": 420000,
                "Estimate": None,
                "Source": "facebook",
                "Status": "qualified",
                "Score": 64,
            },
        ]
    )


def test_load_prospect_rows_from_csv_with_synonyms(sample_dataframe, tmp_path):
    csv_path = tmp_path / "prospects.csv"
    sample_dataframe.to_csv(csv_path, index=False)

    rows = load_prospect_rows(csv_path)

    assert len(rows) == 2
    first, second = rows
    assert first["id"] == 101
    assert first["owner_name"] == "Lucía Méndez"
    assert first["listed_price"] == 850000
    assert first["market_price_estimate"] == 910000
    assert "owner_name" not in second
    assert "market_price_estimate" not in second

    prospect = Prospect.from_row(second)
    assert prospect.id == "102"
    assert prospect.owner_name == "Unknown owner"
    assert prospect.source is ProspectSource.FACEBOOK
    assert prospect.status is ProspectStatus.QUALIFIED


def test_load_prospect_rows_from_excel_with_mapping(sample_dataframe, tmp_path):
    excel_path = tmp_path / "prospects.xlsx"
    sample_dataframe.rename(columns={"Address": "Ubicación"}).to_excel(excel_path, index=False)

    rows = load_prospect_rows(excel_path, column_mapping={"address": "Ubicación"})

    assert [row["address"] for row in rows] == ["Av. Reforma 222, CDMX", "Calle Roble 14"]
    assert rows[0]["quality_score"] == 87


def test_blank_rows_are_skipped(tmp_path):
    csv_path = tmp_path / "prospects.csv"
    csv_path.write_text("id,address\n1,Calle Uno\n,\n2,Calle Dos\n", encoding="utf-8")

    rows = load_prospect_rows(csv_path)

    assert [row["id"] for row in rows] == [1, 2]


def test_unsupported_file_extension(tmp_path):
    bad_path = tmp_path / "prospects.json"
    bad_path.write_text("{}", encoding="utf-8")

    with pytest.raises(UnsupportedFileTypeError):
        load_prospect_rows(bad_path)
