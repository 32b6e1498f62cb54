# =============================================================================
# Pydantic V2 Schemas
# =============================================================================
#   - chat.py:      ChatMessage / Chat, shared by the API and chat history
#   - requests.py:  Request bodies
#   - responses.py: Response bodies
# =============================================================================
