"""
Round-table discussion engine for language-model agents.

Modules:
- manager: ConversationManager (create, run turns, load)
- agents: AgentBackend (prompt assembly, rate limit, fallback replies)
- parser: PUBLIC RESPONSE / PRIVATE THOUGHTS extraction
- store: ConversationStore on SQLite
- llm: OpenAI / Groq chat clients via LangChain
- states: Agent / Message / Conversation dataclasses
- stream_runner: synchronous turn-by-turn event generator for UIs
- cli: the agent-forum command (start, load, show, list)
"""
