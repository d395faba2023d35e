"""Interactive chat CLI with bounded context."""

from __future__ import annotations

import os
from pathlib import Path

from groq import AsyncGroq

from .config import ContextConfig, ModelConfig, config_from_env, load_config
from .conversation import Conversation
from .facts import GroqFactExtractor, SQLiteFactStore
from .logging import configure_logger, get_logger
from .memory import Embedder, GroqSummarizer, HashingEmbedder, HttpEmbedder
from .models import AssembledContext

SYSTEM_PROMPT = "You are a helpful assistant. Use the facts and memory notes when relevant."
SECTION_FRAMING = "\n\n<facts>\n</facts>\n\n<memory>\n</memory>"

BANNER = """
Threadwise v0.1.0 - bounded context chat

Commands:
  /exit, /quit  - Exit the CLI
  /reset        - Start a new conversation
  /facts        - Show known facts
  /context      - Show what the last request contained
  /help         - Show this help

Type your message and press Enter.
"""


def build_embedder(model_config: ModelConfig) -> Embedder:
    """HTTP embedder when an endpoint is configured, local hashing otherwise."""
    if model_config.embeddings_url:
        return HttpEmbedder(
            model_config.embeddings_url,
            model_config.embeddings_model,
            api_key=model_config.embeddings_api_key,
        )
    return HashingEmbedder()


class CLI:
    """Interactive command-line chat."""

    def __init__(
        self,
        config: ContextConfig | None = None,
        model_config: ModelConfig | None = None,
        groq_client: AsyncGroq | None = None,
        facts_db_path: Path | None = None,
    ) -> None:
        if config is None or model_config is None:
            env_config, env_model = config_from_env(load_config())
            config = config or env_config
            model_config = model_config or env_model

        self.config = config
        self.model_config = model_config
        self.client = groq_client or AsyncGroq(api_key=model_config.api_key)
        self.embedder = build_embedder(model_config)
        self.facts_db_path = facts_db_path
        self.logger = get_logger()
        self.last_context: AssembledContext | None = None
        self.conversation = self._new_conversation()

    def _new_conversation(self) -> Conversation:
        fact_store = None
        if self.facts_db_path is not None:
            fact_store = SQLiteFactStore(self.facts_db_path)
            fact_store.init_db()
        return Conversation(
            config=self.config,
            embedder=self.embedder,
            summarizer=GroqSummarizer(self.client, model=self.model_config.model),
            extractor=GroqFactExtractor(self.client, model=self.model_config.model),
            fact_store=fact_store,
            event_logger=self.logger,
        )

    def _close_conversation(self, keep_facts: bool = False) -> None:
        self.conversation.close(keep_facts=keep_facts)
        if isinstance(self.conversation.facts, SQLiteFactStore):
            self.conversation.facts.close()

    def _reset(self) -> None:
        """Tear down the conversation and start a new one."""
        old_id = self.conversation.id
        self._close_conversation()
        self.conversation = self._new_conversation()
        self.last_context = None
        print(f"\n✓ Conversation reset. {old_id} -> {self.conversation.id}")

    def _format_facts(self) -> str:
        facts = self.conversation.facts.facts()
        if not facts:
            return "No facts yet."
        return "\n".join(f"- {fact.render()}" for fact in facts)

    def _format_context(self) -> str:
        context = self.last_context
        if context is None:
            return "No context assembled yet."
        lines = [
            f"facts: {len(context.facts)}",
            f"memories: {len(context.memories)}"
            + (" (memory unavailable)" if context.memory_unavailable else ""),
            f"recent turns: {context.recent[0].index}..{context.query.index}",
            f"tokens: ~{context.estimated_tokens}/{context.token_budget}"
            + (" (over budget)" if context.over_budget else ""),
        ]
        return "\n".join(lines)

    def _reserved_tokens(self) -> int:
        """Estimated cost of the system prompt and section framing."""
        return self.conversation.assembler.estimator(SYSTEM_PROMPT + SECTION_FRAMING)

    async def _process_message(self, message: str) -> None:
        """Send a user message with assembled context and print the reply."""
        self.conversation.append("user", message)
        context = await self.conversation.assemble(reserved_tokens=self._reserved_tokens())
        self.last_context = context

        try:
            reply = await self._reply(context)
        except Exception as e:
            print(f"\n❌ Error: {e}")
            self.logger.log("error", conversation_id=self.conversation.id, error=str(e))
            return

        self.conversation.append("assistant", reply)
        print("\n" + "─" * 40)
        print(reply)
        print("─" * 40)

    async def _reply(self, context: AssembledContext) -> str:
        response = await self.client.chat.completions.create(
            model=self.model_config.model,
            messages=context.to_messages(SYSTEM_PROMPT),
        )
        return response.choices[0].message.content or ""

    async def _handle_command(self, command: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        cmd = command.lower().strip()

        if cmd in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            return False

        if cmd == "/reset":
            self._reset()
            return True

        if cmd == "/facts":
            print(self._format_facts())
            return True

        if cmd == "/context":
            print(self._format_context())
            return True

        if cmd == "/help":
            print(BANNER)
            return True

        return True  # Unknown command, continue

    async def run(self) -> None:
        """Run the interactive CLI."""
        print(BANNER)
        print(f"Conversation: {self.conversation.id}\n")

        try:
            while True:
                try:
                    user_input = input("you> ").strip()
                except (KeyboardInterrupt, EOFError):
                    print("\n👋 Goodbye!")
                    break

                if not user_input:
                    continue

                if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                    if not await self._handle_command(user_input):
                        break
                    continue

                await self._process_message(user_input)
        finally:
            self._close_conversation(keep_facts=self.facts_db_path is not None)


async def run_cli() -> None:
    """Run the CLI with configuration from the environment."""
    configure_logger()

    if not os.getenv("GROQ_API_KEY"):
        print("❌ Error: GROQ_API_KEY environment variable not set")
        print("Please set it in your .env file or environment")
        return

    facts_db = os.getenv("THREADWISE_FACTS_DB")
    cli = CLI(facts_db_path=Path(facts_db).expanduser() if facts_db else None)
    await cli.run()
