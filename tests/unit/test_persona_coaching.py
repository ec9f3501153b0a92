from agents.coaching import detect_star_hints, direct_query_fallback, explanation_reply, star_check_reply
from agents.persona_manager import apply_persona, persona_line, strip_role_label


def test_persona_label_applied_once():
    assert apply_persona("Judge: Keep going.", mode="judge") == "Judge: Keep going."
    assert apply_persona("assistant: Keep going.", mode="live_interviewer") == "Interviewer: Keep going."
    assert strip_role_label("Interviewer:   hi") == "hi"


def test_persona_lines_differ_by_mode():
    judge = persona_line("score_report", mode="judge", overall=64, weakest="grammar (50)")
    live = persona_line("score_report", mode="live_interviewer", overall=64, weakest="grammar (50)")
    assert judge == "Your current score is 64/100. Weakest area is grammar (50). Improve that next."
    assert live == "Your current score is 64/100. Improve grammar (50) in your next response."
    assert persona_line("language", mode="live_interviewer", core="English").startswith("Done. I will keep replies in English.")


def test_star_hints():
    hints = detect_star_hints("On the payments project I built a retry queue and reduced failures by 30%.")
    assert hints == (True, True, True)
    assert detect_star_hints("hello") == (False, False, False)


def test_star_check_reply_escalates():
    assert star_check_reply("too short", "Q?").startswith("Your answer is too short.")
    no_action = "Our team had a difficult project with many issues and we needed to fix the release process quickly"
    assert star_check_reply(no_action, "Q?").startswith("Clarify what you personally did")
    no_result = "On that project I built the new release pipeline and documented every step for the whole team"
    assert star_check_reply(no_result, "Q?").startswith("Add one quantified outcome")


def test_explanations_and_direct_fallbacks():
    assert "conflict handling" in explanation_reply("Describe a conflict with a stakeholder.")
    assert "system thinking for SRE" in explanation_reply("Design a scalable system.", target_role="SRE")
    assert direct_query_fallback("what is JWT auth?").startswith("JWT is a signed token")
    assert direct_query_fallback("why microservices").startswith("Microservices split")
