"""Main entry point for the ai-collaborator CLI.

Handles provider selection, agent setup and the ``run``, ``models`` and
``capabilities`` commands. Engine errors are mapped to distinct exit codes.
"""

import argparse
import asyncio
import json
import sys

import yaml

from .adapters import ModelAdapter
from .agents import ManagedAgent
from .capabilities import Capability, describe, parse_capabilities
from .clients.base import CompletionBackend
from .clients.factory import create_backend, get_available_providers
from .config import AgentConfiguration, get_settings
from .dispatcher import Dispatcher
from .exceptions import (
    AgentError,
    CapabilityNotSupportedError,
    ClientError,
    InvalidConfigurationError,
    InvalidTaskError,
    ModelNotFoundError,
    NoCapableAgentError,
    TaskTimeoutError,
)
from .logging import get_logger, setup_logging
from .types import Task, TaskPriority, TaskResult

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2
EXIT_NO_AGENT = 3
EXIT_CAPABILITY = 4
EXIT_MODEL_NOT_FOUND = 5
EXIT_TIMEOUT = 6
EXIT_BACKEND = 7

# most specific first
_EXIT_CODES: tuple[tuple[type[Exception], int], ...] = (
    (InvalidTaskError, EXIT_CONFIGURATION),
    (InvalidConfigurationError, EXIT_CONFIGURATION),
    (NoCapableAgentError, EXIT_NO_AGENT),
    (CapabilityNotSupportedError, EXIT_CAPABILITY),
    (ModelNotFoundError, EXIT_MODEL_NOT_FOUND),
    (TaskTimeoutError, EXIT_TIMEOUT),
    (ClientError, EXIT_BACKEND),
)


def exit_code_for(error: Exception) -> int:
    """Map an engine error onto the process exit code."""
    for error_type, code in _EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return EXIT_FAILURE


def load_yaml_config(path: str = "config.yaml") -> dict:
    """Load configuration from config.yaml if it exists."""
    try:
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}


def get_provider_and_model(args: argparse.Namespace, yaml_config: dict) -> tuple[str, str | None]:
    """Determine the provider and model to use.

    Priority order:
    1. CLI arguments
    2. Config file (config.yaml)
    3. Environment variables (via pydantic settings)
    4. Auto-detection based on available API keys
    """
    settings = get_settings()
    llm_config = yaml_config.get("llm", {})

    # priority: cli > yaml > env
    provider = args.provider or llm_config.get("provider") or settings.detect_provider()
    model = args.model or llm_config.get("model") or settings.llm_model

    return provider, model


def build_agent_configuration(
    args: argparse.Namespace,
    yaml_config: dict,
    model: str | None,
) -> AgentConfiguration:
    """Merge the ``agent`` section of config.yaml, settings and CLI flags."""
    settings = get_settings()
    data = settings.agent_configuration(model).model_dump()
    data.update(yaml_config.get("agent", {}))
    if model:
        data["model_id"] = model
    if getattr(args, "temperature", None) is not None:
        data["temperature"] = args.temperature
    if getattr(args, "max_tokens", None) is not None:
        data["max_tokens"] = args.max_tokens
    if getattr(args, "no_stream", False):
        data["stream"] = False
    return AgentConfiguration.from_mapping(data)


def create_cli_backend(args: argparse.Namespace, yaml_config: dict) -> tuple[CompletionBackend, str | None]:
    settings = get_settings()
    provider, model = get_provider_and_model(args, yaml_config)
    base_url = args.base_url or yaml_config.get("llm", {}).get("base_url")
    if provider == "ollama":
        base_url = base_url or settings.ollama_base_url

    print(f"Using provider: {provider}", file=sys.stderr)
    backend = create_backend(
        provider,
        model=model,
        api_key=settings.get_api_key_for_provider(provider),
        base_url=base_url,
    )
    # the factory fills in the provider default when no model was given
    return backend, backend.model


def build_task(args: argparse.Namespace) -> Task:
    settings = get_settings()
    capabilities = parse_capabilities(args.capabilities.split(",")) if args.capabilities else None
    if not capabilities:
        capabilities = frozenset({Capability.BASIC_COMPLETION})

    context: dict = {"source": "cli"}
    if args.language:
        context["language"] = args.language

    try:
        priority = TaskPriority[args.priority.upper()]
    except KeyError as e:
        raise InvalidTaskError(f"unknown priority '{args.priority}'") from e

    return Task(
        description=args.description or args.query,
        query=args.query,
        required_capabilities=capabilities,
        context=context,
        priority=priority,
        timeout=args.timeout or settings.default_task_timeout,
        created_by="cli",
    )


def format_result(result: TaskResult, as_json: bool = False) -> str:
    if as_json:
        return json.dumps(
            {
                "task_id": str(result.task_id),
                "status": result.status.value,
                "output": result.output,
                "execution_time": result.execution_time,
                "completed_at": result.completed_at.isoformat(),
                "metadata": dict(result.metadata),
            },
            indent=2,
        )
    return str(result.output)


async def run_task(args: argparse.Namespace, yaml_config: dict) -> int:
    """Build the agent and dispatcher, run one task and print its result."""
    task = build_task(args)
    backend, model = create_cli_backend(args, yaml_config)
    config = build_agent_configuration(args, yaml_config, model)

    adapter = ModelAdapter(backend)
    agent = ManagedAgent(adapter, name=f"{model or 'model'}-agent", description="CLI model agent")
    if args.verbose:
        agent.add_state_listener(lambda state: print(f"[state] {state}", file=sys.stderr))

    try:
        # select up front so a missing model surfaces as ModelNotFoundError
        if config.model_id:
            await adapter.select_model(config.model_id)
        init = await agent.initialize(config.model_copy(update={"model_id": None}))
    except AgentError:
        await adapter.close()
        raise
    if not init.success:
        await adapter.close()
        raise InvalidConfigurationError(init.message or "agent initialization failed")

    dispatcher = Dispatcher()
    dispatcher.register(agent)
    try:
        result = await dispatcher.execute(task)
    finally:
        await dispatcher.shutdown_all()

    print(format_result(result, as_json=args.json))
    return EXIT_OK


async def list_models(args: argparse.Namespace, yaml_config: dict) -> int:
    backend, _ = create_cli_backend(args, yaml_config)
    adapter = ModelAdapter(backend)
    try:
        models = await adapter.list_models()
        for model in models:
            if args.verbose:
                print(adapter.describe_model_capabilities(model.name))
                memory = await adapter.estimate_memory_requirements(model.name)
                print(f"Estimated memory: {memory:.1f} GB")
                if args.memory_gb is not None:
                    viable, reason = await adapter.check_model_viability(model.name, args.memory_gb)
                    print("Fits in available memory" if viable else reason)
                print()
            else:
                line = model.name
                if args.memory_gb is not None:
                    viable, _ = await adapter.check_model_viability(model.name, args.memory_gb)
                    if not viable:
                        line += "  (insufficient memory)"
                print(line)
    finally:
        await adapter.close()
    return EXIT_OK


def list_capabilities() -> int:
    for capability in Capability:
        print(f"{capability.value:<22} {describe(capability)}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-collaborator",
        description="Dispatch tasks to model-backed agents",
    )
    parser.add_argument(
        "--provider",
        choices=get_available_providers(),
        help="Backend provider to use (overrides config and auto-detection)"
    )
    parser.add_argument(
        "--model",
        help="Model to use (overrides config)"
    )
    parser.add_argument(
        "--base-url",
        help="Backend server url (overrides config)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (also settable via AI_COLLABORATOR_LOG_LEVEL env var)"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output"
    )

    # accepted after the subcommand too; SUPPRESS keeps a global --verbose intact
    verbose_parent = argparse.ArgumentParser(add_help=False)
    verbose_parent.add_argument(
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a single task", parents=[verbose_parent])
    run_parser.add_argument("query", help="Task query to process")
    run_parser.add_argument("-d", "--description", help="Task description")
    run_parser.add_argument(
        "-c", "--capabilities",
        help="Required capabilities, comma-separated (default: basic_completion)"
    )
    run_parser.add_argument(
        "-p", "--priority",
        default="normal",
        help="Task priority: low, normal, high or critical"
    )
    run_parser.add_argument("-t", "--timeout", type=float, help="Timeout in seconds")
    run_parser.add_argument("--language", help="Programming language hint for code tasks")
    run_parser.add_argument("--temperature", type=float, help="Pin the sampling temperature")
    run_parser.add_argument("--max-tokens", type=int, help="Maximum tokens to generate")
    run_parser.add_argument("--no-stream", action="store_true", help="Disable streaming")
    run_parser.add_argument("--json", action="store_true", help="Print the full result as JSON")

    models_parser = subparsers.add_parser(
        "models", help="List the models the backend serves", parents=[verbose_parent]
    )
    models_parser.add_argument(
        "--memory-gb",
        type=float,
        help="Available RAM in GB; flags models that would not fit"
    )
    subparsers.add_parser("capabilities", help="List known capabilities")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the ai-collaborator CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # setup logging early
    setup_logging(args.log_level or get_settings().log_level)
    args.verbose = args.verbose or get_settings().verbose

    if args.command == "capabilities":
        return list_capabilities()

    yaml_config = load_yaml_config()
    try:
        if args.command == "models":
            return asyncio.run(list_models(args, yaml_config))
        return asyncio.run(run_task(args, yaml_config))
    except AgentError as e:
        logger.debug("command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return exit_code_for(e)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
