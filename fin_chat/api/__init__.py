# =============================================================================
# API Package - FastAPI Route Handlers
# =============================================================================
# Each module defines a FastAPI APIRouter for a specific feature:
#   - chatbot.py: POST /api/chatbot (the question pipeline) + route check
#   - chats.py:   Saved chat CRUD under /api/chats
#   - health.py:  GET /health
#   - deps.py:    Shared dependencies (caller identity, repositories)
# =============================================================================
