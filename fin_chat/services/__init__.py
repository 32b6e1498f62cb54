# =============================================================================
# Services Package - External Clients and Shared Logic
# =============================================================================
#   - llm.py:          LLM provider abstraction (Anthropic / OpenAI-compatible)
#   - fmp.py:          Financial Modeling Prep async client
#   - chunker.py:      Transcript chunking
#   - chat_history.py: In-memory chat sessions and threshold persistence
# =============================================================================
