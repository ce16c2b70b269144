from __future__ import annotations

from easymode.services.reflection import REGENERATION_THRESHOLD, critique, reflect

from conftest import FakeLLM


def test_good_draft_is_kept() -> None:
    llm = FakeLLM(['{"score": 5, "issues": []}'])

    result = reflect(llm, "I'm nervous", "Take one breath, then send the text.")

    assert result.response == "Take one breath, then send the text."
    assert result.confidence == 5
    assert result.regenerated is False
    assert llm.calls[0]["json_mode"] is True


def test_threshold_score_does_not_regenerate() -> None:
    llm = FakeLLM([f'{{"score": {REGENERATION_THRESHOLD}, "issues": ["a bit long"]}}'])

    result = reflect(llm, "hi", "draft")

    assert result.regenerated is False
    assert len(llm.calls) == 1


def test_weak_draft_is_regenerated_with_capped_confidence() -> None:
    llm = FakeLLM(['{"score": 2, "issues": ["Not actionable"]}', "Try saying hello to one colleague today."])

    result = reflect(llm, "I'm stuck", "You can do it!")

    assert result.regenerated is True
    assert result.response == "Try saying hello to one colleague today."
    assert result.confidence == 3
    assert "Not actionable" in llm.calls[1]["messages"][1]["content"]


def test_unreadable_critique_counts_as_pass() -> None:
    llm = FakeLLM(["Looks great to me!"])

    review = critique(llm, "hi", "draft")

    assert review.score == REGENERATION_THRESHOLD
    assert review.needs_regeneration is False


def test_out_of_range_scores_are_clamped() -> None:
    assert critique(FakeLLM(['{"score": 11}']), "hi", "draft").score == 5
    assert critique(FakeLLM(['{"score": -2}']), "hi", "draft").score == 1


def test_issues_given_as_a_sentence_stay_whole() -> None:
    review = critique(FakeLLM(['{"score": 3, "issues": "too vague"}']), "hi", "draft")
    assert review.issues == ["too vague"]

    review = critique(FakeLLM(['{"score": 3, "issues": {"tone": "flat"}}']), "hi", "draft")
    assert review.issues == []
