import pytest

from pysquad.errors import UnderfilledFormation
from pysquad.lineup import build_playbook, build_standard_lineups, impact_substitutes, set_piece_specialists
from pysquad.models import Candidate, PositionGroup, Roster, SolutionPath
from pysquad.report import render_playbook


def _player(player_id, position, quality, club="Rovers", nationality="England", **extra):
    return Candidate(
        player_id=player_id,
        name=player_id.title(),
        position=position,
        quality=quality,
        cost=1e6,
        club=club,
        nationality=nationality,
        **extra,
    )


def _squad() -> Roster:
    players = [
        _player("gk_a", "GK", 84, goalkeeping_score=80),
        _player("gk_b", "GK", 80, goalkeeping_score=86),
        _player("gk_c", "GK", 70, goalkeeping_score=60),
    ]
    for idx in range(8):
        players.append(
            _player(
                f"def_{idx}",
                "DEF",
                70 + idx,
                club="United" if idx < 2 else "Rovers",
                defensive_score=60 + 3 * (7 - idx),
                attributes={"strength": 70.0 + idx},
            )
        )
    for idx in range(8):
        players.append(
            _player(
                f"mid_{idx}",
                "MID",
                72 + idx,
                nationality="Spain" if idx % 2 else "England",
                offensive_score=50 + 4 * (7 - idx),
                defensive_score=55 + idx,
                attributes={
                    "stamina": 60.0 + idx,
                    "penalties": 70.0,
                    "composure": 70.0 + idx,
                    "crossing": 80.0 - idx,
                    "curve": 75.0,
                    "fk_accuracy": 60.0 + idx,
                    "shot_power": 70.0,
                },
            )
        )
    for idx in range(6):
        players.append(
            _player(
                f"fwd_{idx}",
                "FWD",
                78 + idx,
                club="City" if idx == 5 else "Rovers",
                offensive_score=70 + idx,
                attributes={"stamina": 90.0 - idx},
            )
        )
    return Roster(players=tuple(players), path=SolutionPath.EXACT, budget=1e9)


def test_standard_lineups_use_expected_formations():
    lineups = build_standard_lineups(_squad())

    assert list(lineups) == ["chemistry", "balanced", "defensive", "offensive"]
    assert lineups["defensive"].formation == "5-3-2"
    assert lineups["offensive"].formation == "4-3-3"
    for lineup in lineups.values():
        assert len(lineup) == 11
        # keepers are picked on goalkeeping score, not overall quality
        assert lineup.player_ids[0] == "gk_b"


def test_chemistry_lineup_favours_anchor_club():
    lineups = build_standard_lineups(_squad())

    balanced_defenders = lineups["balanced"].player_ids[1:5]
    chemistry_defenders = lineups["chemistry"].player_ids[1:5]
    assert balanced_defenders == ("def_7", "def_6", "def_5", "def_4")
    # United defenders lose the +3 club bonus against the Rovers anchor
    assert "def_0" not in chemistry_defenders
    assert lineups["chemistry"].count(PositionGroup.FORWARD) == 2
    assert "fwd_5" not in lineups["chemistry"].player_ids


def test_defensive_and_offensive_rankings():
    lineups = build_standard_lineups(_squad(), workers=4)

    assert lineups["defensive"].player_ids[1:6] == ("def_0", "def_1", "def_2", "def_3", "def_4")
    assert lineups["offensive"].player_ids[5:8] == ("mid_0", "mid_1", "mid_2")


def test_set_piece_specialists():
    picks = {pick.role: pick for pick in set_piece_specialists(_squad())}

    assert picks["Penalty Taker"].candidate.player_id == "mid_7"
    assert picks["Direct Free Kick"].candidate.player_id == "mid_7"
    assert picks["Corner Kicks"].candidate.player_id == "mid_0"
    assert picks["Long Throw-Ins"].candidate.player_id == "def_7"
    assert picks["Penalty Taker"].score == pytest.approx(147)


def test_impact_substitutes_come_from_the_bench():
    squad = _squad()
    balanced = build_standard_lineups(squad)["balanced"]

    picks = {pick.role: pick for pick in impact_substitutes(squad, balanced)}

    starters = set(balanced.player_ids)
    for pick in picks.values():
        assert pick.candidate is not None
        assert pick.candidate.player_id not in starters
    assert picks["Offensive Spark"].candidate.player_id == "mid_0"
    assert picks["Defensive Closer"].candidate.player_id == "def_0"
    assert picks["Fresh Legs"].candidate.player_id == "fwd_0"


def test_playbook_renders_every_section():
    playbook = build_playbook(_squad())

    text = render_playbook(playbook)

    assert playbook.anchor.club == "Rovers"
    assert set(playbook.chemistry) == {"chemistry", "balanced", "defensive", "offensive"}
    assert playbook.chemistry["chemistry"] >= playbook.chemistry["balanced"]
    for heading in ("GAME DAY PLAYBOOK", "Chemistry-Optimized XI (4-4-2)", "Set-Piece Specialists", "Impact Substitutes"):
        assert heading in text


def test_small_squad_cannot_fill_standard_lineups():
    squad = Roster(
        players=(_player("gk", "GK", 80, goalkeeping_score=80),),
        path=SolutionPath.EXACT,
        budget=1.0,
    )

    with pytest.raises(UnderfilledFormation):
        build_playbook(squad)
