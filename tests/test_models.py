from __future__ import annotations

import pytest

from mot_trainer.catalog import INDUSTRIES, PERSONAS, build_scenario, catalog_dict
from mot_trainer.errors import ConfigurationError
from mot_trainer.models import STAGE_ORDER, Session, Stage, StagePolicy


def test_stage_order_and_next():
    assert [s.value for s in STAGE_ORDER] == ["EXPLORE", "OFFER", "ACTION", "CONFIRM"]
    assert Stage.EXPLORE.next() is Stage.OFFER
    assert Stage.CONFIRM.next() is Stage.CONFIRM


@pytest.mark.parametrize(
    "stage,count,expected",
    [
        (Stage.EXPLORE, 4, Stage.EXPLORE),
        (Stage.EXPLORE, 5, Stage.OFFER),
        (Stage.OFFER, 8, Stage.OFFER),
        (Stage.OFFER, 9, Stage.ACTION),
        (Stage.ACTION, 12, Stage.ACTION),
        (Stage.ACTION, 13, Stage.CONFIRM),
        (Stage.CONFIRM, 50, Stage.CONFIRM),
    ],
)
def test_policy_canonical_thresholds(stage, count, expected):
    assert StagePolicy().advance(stage, count) is expected


def test_policy_moves_one_step_at_most():
    # 13 turns would justify CONFIRM, but a single call only leaves EXPLORE
    assert StagePolicy().advance(Stage.EXPLORE, 13) is Stage.OFFER


def test_policy_never_regresses():
    assert StagePolicy().advance(Stage.ACTION, 1) is Stage.ACTION


@pytest.mark.parametrize("thresholds", [(4, 4, 12), (8, 4, 12), (-1, 4, 8), (4, 8)])
def test_policy_rejects_bad_thresholds(thresholds):
    with pytest.raises(ConfigurationError):
        StagePolicy(thresholds)


def test_session_turn_sequence(scenario):
    session = Session(scenario=scenario)
    session.append_turn("customer", "你们怎么回事？")
    session.append_turn("trainee", "非常抱歉，请问发生了什么？")
    assert [t.seq for t in session.turns] == [1, 2]
    assert session.trainee_turns == 1
    assert session.last_customer_text() == "你们怎么回事？"
    assert not session.finished

    data = session.to_dict()
    assert data["stage"] == "EXPLORE"
    assert data["report"] is None
    assert data["scenario"]["voice"]["voice_name"] == "Puck"


def test_catalog_lookup():
    scenario = build_scenario("banking", "busy_pro")
    assert scenario.industry.name == "金融银行业"
    assert scenario.persona.traits == ("效率优先", "结果导向")
    assert scenario.voice is None

    with pytest.raises(KeyError):
        build_scenario("space", "busy_pro")
    with pytest.raises(KeyError):
        build_scenario("retail", "busy_pro", "v9")

    data = catalog_dict()
    assert len(data["industries"]) == len(INDUSTRIES)
    assert len(data["personas"]) == len(PERSONAS)
    assert data["voices"][0]["voice_name"] == "Kore"
