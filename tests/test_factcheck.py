from boardroom.factcheck import (
    FACT_CHECK_TRIGGERS,
    contains_factual_claims,
    needs_fact_checking,
    should_verify,
)
from boardroom.states import ConversationTurn, Persona


def test_trigger_list():
    assert len(FACT_CHECK_TRIGGERS) == 17
    assert "growth rate" in FACT_CHECK_TRIGGERS


def test_needs_fact_checking_is_case_insensitive():
    assert needs_fact_checking("Recent Study says otherwise")
    assert needs_fact_checking("a 3 BILLION dollar market")
    assert not needs_fact_checking("I just feel good about it")
    assert not needs_fact_checking("")


def test_only_recent_turns_count():
    turns = [ConversationTurn.create("according to the survey", Persona.SYSTEM2)]
    turns += [ConversationTurn.create("sounds fun", Persona.SYSTEM1) for _ in range(3)]

    assert not contains_factual_claims(turns)
    assert contains_factual_claims(turns, window=4)
    assert not contains_factual_claims([])


def test_only_moderator_verifies():
    topic = "Is a 20 percentage raise worth moving?"
    assert should_verify(Persona.MODERATOR, topic)
    assert should_verify("moderator", topic)
    assert not should_verify(Persona.SYSTEM2, topic)
    assert not should_verify(Persona.MODERATOR, "Should I move?")


def test_moderator_verifies_claims_in_history():
    history = [ConversationTurn.create("• Market share is shrinking", Persona.DEVILS_ADVOCATE)]
    assert should_verify(Persona.MODERATOR, "Should I move?", history)
