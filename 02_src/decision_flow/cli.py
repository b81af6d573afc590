"""Terminal front-end for growing and inspecting a decision tree."""

import argparse
import logging
from typing import Callable, List

from .config import Settings, load_settings
from .controller import FlowController
from .errors import DecisionFlowError, PersistenceReadFailed
from .graph_model import GraphSnapshot, Position, display_label
from .graph_store import GraphStore
from .llm_gateway import LangChainPredictionGateway
from .persistence import JsonFilePersistence
from .prediction import QUESTION_COUNT, OutcomeAnalysis, PredictionGateway, StaticPredictionGateway
from .scheduling import InlineScheduler
from .workflow import AwaitingAnswer, AwaitingScenario, Idle, ShowingOutcome, WorkflowStateMachine

CANCEL_COMMAND = ":cancel"

InputFn = Callable[[str], str]


def render_tree(snapshot: GraphSnapshot, label_limit: int = 60) -> List[str]:
    if snapshot.is_empty:
        return ["(empty tree)"]
    targets = {edge.target for edge in snapshot.edges}
    emphasized = {edge.target for edge in snapshot.edges if edge.emphasized}
    lines: List[str] = []

    def visit(node_id: str, depth: int) -> None:
        node = snapshot.node(node_id)
        marker = "*" if node_id in emphasized else "-"
        lines.append(
            f"{'  ' * depth}{marker} [{node.id}] {display_label(node.label, label_limit)}"
            f"  ({node.kind.value} @ {node.position.x:g},{node.position.y:g})"
        )
        for child in snapshot.children_of(node_id):
            visit(child.id, depth + 1)

    for node in snapshot.nodes:
        if node.id not in targets:
            visit(node.id, 0)
    return lines


def render_analysis(analysis: OutcomeAnalysis) -> List[str]:
    lines: List[str] = []
    if analysis.summary:
        lines.append(analysis.summary)
    for title, marker, items in (
        ("Positive outcomes", "+", analysis.positive),
        ("Negative outcomes", "-", analysis.negative),
        ("Mixed outcomes", "~", analysis.mixed),
        ("Key considerations", "*", analysis.considerations),
    ):
        if items:
            lines.append(f"{title}:")
            lines.extend(f"  {marker} {item}" for item in items)
    if analysis.recommendation:
        lines.append(f"Recommendation: {analysis.recommendation}")
    return lines


def run_session(workflow: WorkflowStateMachine, input_fn: InputFn = input) -> None:
    """Drive the open workflow session until it returns to idle."""
    while not isinstance(workflow.phase, Idle):
        phase = workflow.phase
        if isinstance(phase, AwaitingScenario):
            if not workflow.submit_scenario(input_fn("Describe your scenario: ")):
                print("Scenario cannot be empty.")
        elif isinstance(phase, AwaitingAnswer):
            session = workflow.session
            print(f"Question {phase.index + 1}/{QUESTION_COUNT}: {session.current_question}")
            answer = input_fn("> ")
            if answer.strip() == CANCEL_COMMAND:
                if not workflow.cancel():
                    print("The first node is required, please keep going.")
            elif not workflow.submit_answer(answer):
                print("Answer cannot be empty.")
        elif isinstance(phase, ShowingOutcome):
            print("\n".join(render_analysis(phase.analysis)))
            choice = input_fn("Create flow from these outcomes? [y/N]: ").strip().lower()
            if choice in {"y", "yes"}:
                workflow.confirm()
            else:
                workflow.start_over()
        else:
            raise DecisionFlowError(f"Unexpected workflow phase: {phase.name}")


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Grow a decision tree with predicted outcomes.")
    parser.add_argument(
        "--graph-path",
        default=None,
        help="Graph JSON file (defaults to FLOW_GRAPH_PATH or 03_data/node_data/nodes.json).",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level, e.g. INFO or DEBUG.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("show", help="Print the current tree.")

    move = subparsers.add_parser("move", help="Move a node to new coordinates.")
    move.add_argument("node_id")
    move.add_argument("x", type=float)
    move.add_argument("y", type=float)

    grow = subparsers.add_parser("grow", help="Ask questions and add predicted outcomes to the tree.")
    grow.add_argument("--node", default=None, help="Node to expand; omit on an empty tree.")
    grow.add_argument(
        "--offline",
        action="store_true",
        help="Use built-in questions and outcomes instead of the language model.",
    )
    return parser.parse_args(argv)


def main(argv: List[str] | None = None, input_fn: InputFn = input) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings()
    persistence = JsonFilePersistence(args.graph_path or settings.graph_path)
    try:
        store = GraphStore.from_persistence(persistence, spacing=settings.spacing)
    except PersistenceReadFailed as error:
        print(f"Error: {error}")
        return 1

    try:
        if args.command == "move":
            store.reposition(args.node_id, Position(x=args.x, y=args.y))
        elif args.command == "grow":
            code = _grow(store, settings, args.node, args.offline, input_fn)
            if code:
                return code
    except DecisionFlowError as error:
        print(f"Error: {error}")
        return 1
    except (EOFError, KeyboardInterrupt):
        print("\nAborted, the tree was not changed by the open session.")
        return 1
    finally:
        # Waits for pending saves so last_save_error is final.
        store.close()

    if store.last_save_error is not None:
        print(f"Error: tree updated in memory but not saved: {store.last_save_error}")
        return 1
    if args.command == "move":
        print(f"Moved node {args.node_id} to ({args.x:g}, {args.y:g}).")
    else:
        print("\n".join(render_tree(store.current_snapshot())))
    return 0


def _grow(store: GraphStore, settings: Settings, node_id: str | None, offline: bool, input_fn: InputFn) -> int:
    if node_id is not None and store.current_snapshot().is_empty:
        print(f"The tree is empty; ignoring --node {node_id} and starting a new scenario.")

    gateway: PredictionGateway = StaticPredictionGateway() if offline else LangChainPredictionGateway(settings)
    workflow = WorkflowStateMachine(
        store,
        gateway,
        scheduler=InlineScheduler(),
        debounce_seconds=settings.debounce_seconds,
    )
    controller = FlowController(store, workflow)

    if isinstance(workflow.phase, Idle):
        if node_id is None:
            print("The tree already has nodes; pass --node ID to choose one to expand.")
            return 2
        controller.on_node_click(node_id)

    run_session(workflow, input_fn)
    return 0
