from pathlib import Path

import pytest

from pysquad.errors import DataIntegrityError
from pysquad.ingest import load_candidate_pool
from pysquad.models import PositionGroup


def _candidates_csv() -> str:
    return """player_id,name,position,quality,cost,club,nationality,offensive_score,penalties
gk1,Keeper,GK,80,€10M,Alpha,Spain,,40
def1,Stopper,DEF,75,8000000,Beta,Spain,50,55
mid1,Playmaker,Midfielder,90,€20.5M,Alpha,France,85,88
"""


def test_load_candidate_pool_parses_currency_and_extras(tmp_path: Path):
    path = tmp_path / "candidates.csv"
    path.write_text(_candidates_csv(), encoding="utf-8")

    pool = load_candidate_pool(path)

    assert len(pool) == 3
    keeper = pool.get("gk1")
    assert keeper.cost == pytest.approx(10_000_000)
    assert keeper.offensive_score is None
    assert keeper.attributes == {"penalties": 40.0}
    midfielder = pool.get("mid1")
    assert midfielder.position is PositionGroup.MIDFIELDER
    assert midfielder.cost == pytest.approx(20_500_000)
    assert midfielder.offensive_score == pytest.approx(85)


def test_load_candidate_pool_with_column_mapping():
    text = "ID,Player,Role,Rating,Fee,Team,Country\n7,Nine,FWD,81,€3M,Gamma,Chile\n"

    pool = load_candidate_pool(
        text,
        mapping={
            "player_id": "id",
            "name": "player",
            "position": "role",
            "quality": "rating",
            "cost": "fee",
            "club": "team",
            "nationality": "country",
        },
    )

    candidate = pool.get("7")
    assert candidate.name == "Nine"
    assert candidate.club == "Gamma"
    assert candidate.cost == pytest.approx(3_000_000)


def test_malformed_rows_are_reported_together():
    text = """player_id,name,position,quality,cost,club,nationality
a,A,GK,80,10,X,Y
b,B,COACH,80,10,X,Y
c,C,DEF,,10,X,Y
d,D,MID,70,-5,X,Y
e,E,FWD,70,cheap,X,Y
"""

    with pytest.raises(DataIntegrityError) as excinfo:
        load_candidate_pool(text)

    message = str(excinfo.value)
    for line in ("line 3", "line 4", "line 5", "line 6"):
        assert line in message
    assert "line 2" not in message


def test_duplicate_identifiers_rejected():
    text = "player_id,name,position,quality,cost,club,nationality\na,A,GK,80,10,X,Y\na,B,DEF,70,5,X,Y\n"

    with pytest.raises(DataIntegrityError):
        load_candidate_pool(text)
