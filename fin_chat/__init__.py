# =============================================================================
# Financial Chat Agent
# =============================================================================
# A chatbot that answers questions about public companies from their
# earnings call transcripts and financial statements (Financial Modeling
# Prep), routed by a LangGraph pipeline, with an optional Gordon Gekko
# persona.
#
# Package structure:
#   fin_chat/
#   ├── api/          → FastAPI route handlers (chatbot, chats, health)
#   ├── agents/       → LangGraph pipeline and its stages (classify,
#   │                    resolve, time window, summarise, style)
#   ├── db/           → Database engine, ORM models, chat repository
#   ├── models/       → Pydantic V2 request/response schemas
#   └── services/     → LLM providers, FMP client, chunking, chat history
# =============================================================================
