"""
Main entry point for ARCH.

This module wires together all components and provides a terminal front end.

Usage:
    # Command line
    python main.py                      # blank session
    python main.py --mode wizard --lang en
    python main.py --mode load --file projects/arch-my-project.json
    python main.py --mode demo

    # Programmatic
    from main import create_dependencies
    deps = create_dependencies(load_config())
    await deps.session.begin(Blank())

Commands inside the chat:
    /sim [name=value ...]   simulate the hypotheses (optionally moving variables)
    /map                    show the project map
    /save [path]            export the project summary
    /lang es|en             switch language
    /reset                  discard the session and start a blank one
    /quit                   leave
"""

import argparse
import asyncio
import os
import sys
from dataclasses import dataclass, field, replace

import demo
import prompts
from artifacts import ArtifactOrchestrator, SimulationState
from config import AppConfig, SUPPORTED_LANGUAGES, ensure_directories, load_config
from errors import ArchError, ArtifactGenerationError, ImportParseError, SessionInitError
from llm import LLMClient
from logging_utils import get_logger, set_quiet, set_verbose
from models import DiagramData, Message, Role, WizardData
from persistence import export_summary, import_summary
from session import Blank, Demo, Restored, SessionController, SessionOrigin, SessionStatus, WizardSeeded

logger = get_logger(__name__)

STATUS_MARKS = {"completed": "[x]", "active": "[>]", "pending": "[ ]"}


@dataclass
class Dependencies:
    """
    All collaborators of the terminal front end.

    Created once at startup. Makes testing easy - just swap the llm.
    """
    config: AppConfig
    llm: LLMClient
    session: SessionController
    artifacts: ArtifactOrchestrator
    simulation: SimulationState | None = None
    diagram: DiagramData | None = None
    printed: dict[str, int] = field(default_factory=dict)


def create_dependencies(config: AppConfig, llm: LLMClient | None = None) -> Dependencies:
    """
    Create the dependencies container.

    Args:
        config: Application configuration.
        llm: Optional collaborator to use instead of a real LLMClient.
    """
    if llm is None:
        llm = LLMClient(config.llm, log_path=config.llm_log_path)
    return Dependencies(
        config=config,
        llm=llm,
        session=SessionController(llm, language=config.language),
        artifacts=ArtifactOrchestrator(llm),
    )


# =============================================================================
# Rendering
# =============================================================================

def echo_message(deps: Dependencies, message: Message) -> None:
    """Print what is new in a message since the last call for it."""
    if message.role == Role.USER:
        return
    already = deps.printed.get(message.id, 0)
    if already == 0 and message.text:
        print("\nARCH> ", end="")
    print(message.text[already:], end="", flush=True)
    deps.printed[message.id] = len(message.text)
    if not message.streaming:
        print()


def format_simulation(simulation: SimulationState) -> str:
    """Text table of the sampled curves."""
    config = simulation.config
    primary = config.primary
    lines = [
        f"{config.dependent_label}",
        f"H0: {config.null_formula}",
        f"H1: {config.alt_formula}",
        "",
        f"{primary.label:>16} | {'H0':>10} | {'H1':>10}",
    ]
    for point in simulation.sample():
        lines.append(f"{point.x:>16.1f} | {point.null_y:>10.2f} | {point.alt_y:>10.2f}")
    lines.append("")
    for variable in config.variables:
        value = simulation.values.get(variable.name, variable.default_value)
        lines.append(f"  {variable.name} = {value:g}  ({variable.min:g}..{variable.max:g}) {variable.label}")
    lines.append("")
    lines.append(config.explanation)
    return "\n".join(lines)


def format_diagram(diagram: DiagramData) -> str:
    """Nodes as a linear checklist."""
    lines = []
    for node in diagram.nodes:
        mark = STATUS_MARKS.get(node.status, "[?]")
        lines.append(f"{mark} {node.label}: {node.details}")
        targets = diagram.connected(node)
        if targets:
            lines.append(f"      -> {', '.join(t.label for t in targets)}")
    return "\n".join(lines)


def parse_assignments(args: list[str]) -> dict[str, float]:
    """Parse ['x=1', 'y=2.5'] into a dict. Raises ValueError on bad input."""
    values = {}
    for arg in args:
        name, sep, raw = arg.partition("=")
        if not sep or not name:
            raise ValueError(f"Expected name=value, got '{arg}'")
        values[name.strip()] = float(raw)
    return values


# =============================================================================
# Commands
# =============================================================================

async def open_session(deps: Dependencies, origin: SessionOrigin) -> bool:
    """Start a session, preloading demo artifacts for the demo origin."""
    deps.simulation = None
    deps.diagram = None
    try:
        await deps.session.begin(origin)
    except SessionInitError as e:
        print(f"Could not start the session: {e}")
        return False
    if isinstance(origin, Demo):
        deps.simulation = SimulationState(demo.DEMO_SIMULATION_CONFIG)
        deps.diagram = demo.DEMO_DIAGRAM
    return True


async def simulate(deps: Dependencies, args: list[str]) -> None:
    language = deps.session.language
    if deps.simulation is None:
        try:
            deps.simulation = await deps.artifacts.request_simulation_config(deps.session.transcript())
        except ArtifactGenerationError as e:
            logger.debug(f"Simulation unavailable: {e}")
            print(prompts.text(language, "sim_error"))
            return

    if not deps.simulation.usable:
        print(prompts.text(language, "sim_error"))
        return

    try:
        for name, value in parse_assignments(args).items():
            deps.simulation.set_value(name, value)
        print(format_simulation(deps.simulation))
    except (ValueError, KeyError) as e:
        print(f"Invalid assignment: {e}")


async def show_map(deps: Dependencies) -> None:
    language = deps.session.language
    try:
        deps.diagram = await deps.artifacts.request_diagram(deps.session.transcript(), language)
    except ArtifactGenerationError as e:
        logger.debug(f"Diagram unavailable: {e}")
    if deps.diagram is None or not deps.diagram.nodes:
        print(prompts.text(language, "map_empty"))
        return
    print(format_diagram(deps.diagram))


async def save(deps: Dependencies, args: list[str]) -> None:
    if len(deps.session.transcript()) < 2:
        print("Nothing to save yet.")
        return
    target = args[0] if args else deps.config.paths.export_dir + os.sep
    try:
        summary = await deps.artifacts.request_project_summary(deps.session.transcript())
        path = export_summary(summary, target)
    except (ArtifactGenerationError, OSError) as e:
        print(f"Could not save the project: {e}")
        return
    print(f"Saved {path}")


async def handle_command(deps: Dependencies, line: str) -> bool:
    """Run a slash command. Returns False when the user wants to quit."""
    command, *args = line.split()
    if command == "/quit":
        return False
    if command == "/sim":
        await simulate(deps, args)
    elif command == "/map":
        await show_map(deps)
    elif command == "/save":
        await save(deps, args)
    elif command == "/lang" and args and args[0] in SUPPORTED_LANGUAGES:
        deps.session.set_language(args[0])
        print(f"Language: {args[0]}")
    elif command == "/reset":
        deps.session.reset()
        deps.printed.clear()
        await open_session(deps, Blank())
    else:
        # Not ours; the assistant understands its own commands (/modelar, /gap...)
        await deps.session.send_user_message(line)
    return True


def read_wizard(language: str) -> WizardData:
    """Ask the three guided-start questions on the terminal."""
    questions = {
        "es": ("¿Cuál es tu campo de estudio general? ",
               "¿Qué fenómeno o problema quieres investigar? ",
               "¿Tienes alguna sospecha o idea preliminar? "),
        "en": ("What is your general field of study? ",
               "What phenomenon or problem do you want to investigate? ",
               "Do you have any preliminary suspicion or idea? "),
    }[language]
    answers = []
    for question in questions:
        answer = ""
        while not answer.strip():
            answer = input(question)
        answers.append(answer.strip())
    return WizardData(*answers)


async def chat_loop(deps: Dependencies) -> None:
    while True:
        line = await asyncio.to_thread(input, "\nYOU> ")
        line = line.strip()
        if not line:
            continue
        if line.startswith("/"):
            if not await handle_command(deps, line):
                return
            continue
        await deps.session.send_user_message(line)
        if deps.session.status == SessionStatus.ERROR:
            print(prompts.text(deps.session.language, "stream_error"), deps.session.last_error)


async def run(deps: Dependencies, mode: str, file_path: str | None = None) -> int:
    """Open a session for the chosen mode, then chat until /quit."""
    deps.session.subscribe(lambda message: echo_message(deps, message))

    if mode == "wizard":
        data = await asyncio.to_thread(read_wizard, deps.session.language)
        origin: SessionOrigin = WizardSeeded(data)
    elif mode == "load":
        try:
            origin = Restored(import_summary(file_path))
        except ImportParseError as e:
            print(f"Could not load the project: {e}")
            return 1
    elif mode == "demo":
        origin = Demo()
    else:
        origin = Blank()

    if not await open_session(deps, origin):
        return 1
    await chat_loop(deps)
    return 0


def main():
    """Command-line interface."""
    parser = argparse.ArgumentParser(
        description="ARCH: conversational research architect",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python main.py --mode wizard --lang en
    python main.py --mode load --file projects/arch-my-project.json
        """
    )
    parser.add_argument(
        "--mode",
        choices=["scratch", "wizard", "load", "demo"],
        default="scratch",
        help="How to start the session (default: scratch)"
    )
    parser.add_argument(
        "--file",
        type=str,
        default=None,
        help="Project file to restore (required with --mode load)"
    )
    parser.add_argument(
        "--lang",
        choices=list(SUPPORTED_LANGUAGES),
        default=None,
        help="Interface language (default: from config)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config JSON file"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show debug logging"
    )

    args = parser.parse_args()

    if args.mode == "load" and not args.file:
        parser.error("--mode load requires --file")

    if args.verbose:
        set_verbose(True)
    else:
        set_quiet()

    config = load_config(args.config)
    if args.lang:
        config = replace(config, language=args.lang)
    ensure_directories(config)

    deps = create_dependencies(config)

    try:
        sys.exit(asyncio.run(run(deps, args.mode, args.file)))
    except (KeyboardInterrupt, EOFError):
        print("\nInterrupted by user")
        sys.exit(130)
    except ArchError as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
