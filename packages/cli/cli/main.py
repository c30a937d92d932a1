"""Interactive command-line client for trying the chatbots locally."""

import argparse
import asyncio

from dotenv import load_dotenv  # type: ignore

from chatbot.ChatBot import ChatBot, build_chatbots  # type: ignore
from chatbot.config import ChatSettings  # type: ignore
from chatbot.exceptions import ChatBotError  # type: ignore
from chatbot.models import ConversationTurn, Role  # type: ignore

LOCAL_CLIENT = "cli"


async def ask(bot: ChatBot, question: str, history: list[ConversationTurn]) -> str:
    """Stream one answer to stdout and return its full text."""
    if not bot.rate_limiter.check(LOCAL_CLIENT):
        raise ChatBotError("Rate limit reached, wait a minute.", status_code=429)

    frames = await bot.open_stream(question, history)
    parts: list[str] = []
    async for frame in frames:
        if not frame.is_done:
            parts.append(frame.content)
            print(frame.content, end="", flush=True)
    print()
    return "".join(parts)


async def repl(bot: ChatBot) -> None:
    history: list[ConversationTurn] = []

    while True:
        try:
            user_input = input("\nYou: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input.lower() in ("quit", "exit"):
            print("Goodbye!")
            break

        print("\nAssistant: ", end="", flush=True)
        try:
            answer = await ask(bot, user_input, history)
        except ChatBotError as e:
            print(f"[error {e.status_code}] {e.message}")
            continue

        history.append(ConversationTurn(role=Role.USER, text=user_input))
        history.append(ConversationTurn(role=Role.ASSISTANT, text=answer))

    await bot.aclose()


def main():
    """Run the interactive chatbot REPL.

    Loads environment configuration, builds the chatbot for the chosen
    provider and streams each answer as it arrives.
    """
    parser = argparse.ArgumentParser(description="Chat with the site assistant.")
    parser.add_argument(
        "--provider",
        choices=["openai", "gemini"],
        default="openai",
        help="LLM provider to talk to (default: openai)",
    )
    args = parser.parse_args()

    load_dotenv()
    bot = build_chatbots(ChatSettings.from_env())[args.provider]

    print(f"Gato Rojo Lab assistant via {args.provider} (type 'quit' or 'exit' to stop)")
    print("-" * 60)

    asyncio.run(repl(bot))


if __name__ == "__main__":
    main()
