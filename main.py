import argparse
import sys
import threading
import time

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import Config
from orchestrator.events import PlanReadyEvent, SourcesFoundEvent, TokenUsageEvent
from orchestrator.factory import create_research_controller


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation in the console.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stdout.write(f'\r\033[93mResearching {char}\033[0m')
            sys.stdout.flush()
            time.sleep(0.1)

    # Clear the loading line
    sys.stdout.write('\r' + ' ' * 20 + '\r')
    sys.stdout.flush()


def print_event(event) -> None:
    """Print one research progress event on its own line."""
    sys.stdout.write('\r' + ' ' * 20 + '\r')
    if isinstance(event, PlanReadyEvent):
        print(f"[step {event.step}] Planned {event.query_count} searches: {event.plan_summary}")
        for query in event.queries:
            print(f"    - {query}")
    elif isinstance(event, SourcesFoundEvent):
        print(f"Found {event.count} sources")
        for source in event.sources:
            print(f"    {source.id}. {source.title} ({source.url})")
    elif isinstance(event, TokenUsageEvent):
        print(f"[Tokens used so far: {event.total_tokens}]")


def research_once(controller, question: str, history: list[dict], verbose: bool) -> str:
    stop_animation = threading.Event()
    loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation,))
    loading_thread.daemon = True
    loading_thread.start()

    try:
        outcome = controller.run_sync(question, history, print_event if verbose else None)
    finally:
        stop_animation.set()
        loading_thread.join()

    print(f"\nAnswer:\n{outcome.answer}\n")
    if outcome.sources:
        print("Sources:")
        for source in outcome.sources:
            print(f"  [{source.id}] {source.title} - {source.url}")
    print(f"\n[Steps: {outcome.steps} | Tokens used: {outcome.total_tokens}]\n")
    return outcome.answer


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Iterative web research assistant")
    parser.add_argument("question", nargs="*", help="Question to research (omit for interactive mode)")
    parser.add_argument("--quiet", action="store_true", help="Hide progress events")
    args = parser.parse_args(argv)

    config = Config()
    if not config.validate():
        return 1

    try:
        controller = create_research_controller(config)
    except Exception as e:
        print(f"Error initializing research controller: {str(e)}")
        return 1

    verbose = not args.quiet
    if args.question:
        research_once(controller, " ".join(args.question), [], verbose)
        return 0

    print(f"\n=== Research Assistant ({config.get_model_info()}) ===")
    print("Type 'exit' to quit, 'clear' to reset the conversation, or 'help' for commands\n")

    history: list[dict] = []
    while True:
        try:
            user_input = input("You: ").strip()

            if not user_input:
                continue

            if user_input.lower() in ('exit', 'quit'):
                print("\nGoodbye!")
                break

            if user_input.lower() == 'clear':
                history.clear()
                print("\nConversation cleared.\n")
                continue

            if user_input.lower() == 'help':
                print("\n=== Available Commands ===")
                print("help      - Show this help message")
                print("clear     - Forget previous questions and answers")
                print("exit/quit - Exit the program\n")
                continue

            answer = research_once(controller, user_input, history, verbose)
            history.append({"role": "user", "text": user_input})
            history.append({"role": "assistant", "text": answer})

        except KeyboardInterrupt:
            print("\nExiting...")
            break

    return 0


if __name__ == "__main__":
    sys.exit(main())
