import pandas as pd
import pytest

from prospect_triage.ingestion.exporters import EXPORT_COLUMNS, export_prospects, prospects_to_dataframe
from prospect_triage.models import Prospect


def _sample_prospects():
    return [
        Prospect.from_row(
            {
                "id": "1",
                "address": "Av. Reforma 222",
                "owner_name": "Lucía Méndez",
                "listed_price": 850000,
                "market_price_estimate": 910000,
                "source": "mercadolibre",
                "status": "qualified",
                "quality_score": 87,
                "created_at": "2024-03-01T09:00:00+00:00",
            }
        ),
        Prospect.from_row({"id": "2", "listed_price": 500000, "status": "converted"}),
    ]


def test_prospects_to_dataframe_has_fixed_columns():
    dataframe = prospects_to_dataframe(_sample_prospects())

    assert list(dataframe.columns) == EXPORT_COLUMNS
    first = dataframe.iloc[0]
    assert first["price_gap"] == -60000
    assert first["status_label"] == "Qualified"
    assert dataframe.iloc[1]["owner_name"] == "Unknown owner"
    assert dataframe.iloc[1]["status_label"] == "Won"


def test_formatted_prices_are_currency_text():
    dataframe = prospects_to_dataframe(_sample_prospects(), formatted_prices=True)

    assert dataframe.iloc[0]["listed_price"] == "US$ 850,000"
    assert dataframe.iloc[0]["price_gap"] == "-US$ 60,000"


def test_export_prospects_to_csv_and_excel(tmp_path):
    prospects = _sample_prospects()

    csv_path = export_prospects(prospects, tmp_path / "out" / "prospects.csv")
    excel_path = export_prospects(prospects, tmp_path / "prospects.xlsx")

    csv_frame = pd.read_csv(csv_path)
    assert list(csv_frame.columns) == EXPORT_COLUMNS
    assert csv_frame["address"].tolist() == ["Av. Reforma 222", "Unknown address"]

    excel_frame = pd.read_excel(excel_path, sheet_name="Prospects")
    assert excel_frame["status"].tolist() == ["qualified", "converted"]


def test_export_rejects_unknown_extension(tmp_path):
    with pytest.raises(ValueError):
        export_prospects(_sample_prospects(), tmp_path / "prospects.json")
