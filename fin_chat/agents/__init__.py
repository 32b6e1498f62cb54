# =============================================================================
# Agents Package - LangGraph Question Pipeline
# =============================================================================
#   - orchestrator.py: StateGraph wiring and answer_question()
#   - classifier.py:   earnings_call / financial_metric / other
#   - resolver.py:     companies and ticker symbols
#   - time_window.py:  earnings window, metric window, metric endpoint
#   - summarizer.py:   transcript map/filter/reduce, metric answers
#   - stylist.py:      Gordon Gekko rewrite, off-topic answers
# =============================================================================
