"""
Auto-conversation engine for an AI decision boardroom.

Modules:
- manager: AutoConversationEngine turn scheduler (start/pause/resume/stop/interrupt)
- agents: PersonaResponder that turns an UtteranceRequest into persona text
- states: Persona, ConversationTurn and EngineState
- factcheck: when the moderator should verify claims
- reviewer: decision summary over a finished conversation
- llm: Perplexity chat client via LangChain
"""
