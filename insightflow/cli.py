"""Command-line interface for the research agent."""

import asyncio
import json
from typing import Annotated

import typer

from .config import ConfigValidator, create_backend, list_profiles, load_config
from .config.loader import DEFAULT_CONFIG_PATH, ProviderConfig
from .exceptions import RunRejectedError
from .orchestration import (
    AnalysisResult,
    NullReporter,
    ResearchOrchestrator,
    ResearchStep,
    RunState,
    StepStatus,
)

app = typer.Typer(
    name="insightflow",
    help="Deep research agent: plan, search and synthesize a report.",
    add_completion=False,
)

STATUS_MARKERS = {
    StepStatus.PENDING: "[ ]",
    StepStatus.SEARCHING: "[~]",
    StepStatus.ANALYZING: "[~]",
    StepStatus.COMPLETED: "[x]",
    StepStatus.FAILED: "[!]",
}

STATE_MESSAGES = {
    RunState.PLANNING: "Structuring research objectives...",
    RunState.RESEARCHING: "Executing search steps & analyzing data...",
    RunState.SYNTHESIZING: "Synthesizing final report...",
}


class ConsoleReporter(NullReporter):
    """Prints run progress to stderr as it happens."""

    async def on_state_changed(self, state: RunState) -> None:
        if state in STATE_MESSAGES:
            typer.echo(STATE_MESSAGES[state], err=True)

    async def on_provider(self, provider_name: str) -> None:
        typer.echo(f"Using {provider_name}", err=True)

    async def on_steps_updated(self, steps: list[ResearchStep]) -> None:
        for step in steps:
            if step.status in (StepStatus.SEARCHING, StepStatus.FAILED):
                typer.echo(f"  {STATUS_MARKERS[step.status]} {step.query}", err=True)

    async def on_error(self, message: str) -> None:
        typer.echo(f"Analysis halted: {message}", err=True)


def _load_profile(profile: str | None) -> ProviderConfig:
    try:
        return load_config(profile=profile)
    except KeyError as e:
        typer.echo(f"Error: {e.args[0]}", err=True)
        raise typer.Exit(1)


@app.command()
def research(
    query: Annotated[str, typer.Argument(help="Research question to analyze")],
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Provider profile from providers.yaml"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or json"),
    ] = "text",
):
    """
    Research a question and print the final report.

    Examples:

        # Use the default (Gemini) profile
        insightflow research "impact of AI on education"

        # Use a local Ollama server with Tavily search
        insightflow research "evolution of quantum computing" -p local

        # Output as JSON
        insightflow research "battery recycling economics" --format json
    """
    if output_format not in ("text", "json"):
        typer.echo("Error: Format must be one of: text, json", err=True)
        raise typer.Exit(1)

    config = _load_profile(profile)
    result = asyncio.run(_research_async(query, config))

    if result is None:
        raise typer.Exit(1)

    _print_result(result, output_format)


async def _research_async(query: str, config: ProviderConfig) -> AnalysisResult | None:
    """Async implementation of research."""
    validator = ConfigValidator()
    if not await validator.validate(config):
        typer.echo(f"Error: Provider configuration is invalid: {validator.last_error}", err=True)
        return None

    selection = create_backend(config)
    if selection.substituted:
        typer.echo(
            f"Note: {selection.substitution_reason}; using {selection.provider_name}",
            err=True,
        )

    orchestrator = ResearchOrchestrator(reporter=ConsoleReporter())

    async with selection.backend as backend:
        try:
            return await orchestrator.run(query, config, backend)
        except RunRejectedError as e:
            typer.echo(f"Error: {e}", err=True)
            return None


def _print_result(result: AnalysisResult, output_format: str) -> None:
    if output_format == "json":
        output = {
            "summary": result.summary,
            "deep_dive": result.deep_dive,
            "steps": [
                {
                    "id": step.id,
                    "query": step.query,
                    "status": step.status.value,
                    "result": step.result,
                    "sources": [s.model_dump() for s in step.sources or []],
                }
                for step in result.steps
            ],
            "sources": [s.model_dump() for s in result.all_sources],
        }
        typer.echo(json.dumps(output, indent=2))
        return

    typer.echo("\nEXECUTIVE SUMMARY\n")
    typer.echo(result.summary)
    typer.echo("\nDETAILED ANALYSIS\n")
    typer.echo(result.deep_dive)
    typer.echo("\nSOURCES\n")
    if not result.all_sources:
        typer.echo("No direct links available.")
    for source in result.all_sources:
        typer.echo(f"- {source.display_title}: {source.uri}")


@app.command()
def validate(
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Provider profile from providers.yaml"),
    ] = None,
):
    """Check that a provider profile is usable (probes MiniMax and Ollama)."""
    config = _load_profile(profile)
    validator = ConfigValidator()

    if asyncio.run(validator.validate(config)):
        typer.echo(f"{config.provider.value}: valid")
    else:
        typer.echo(f"{config.provider.value}: invalid ({validator.last_error})", err=True)
        raise typer.Exit(1)


@app.command()
def profiles():
    """List available provider profiles."""
    if not DEFAULT_CONFIG_PATH.exists():
        typer.echo(f"No profiles file at {DEFAULT_CONFIG_PATH}", err=True)
        raise typer.Exit(1)

    typer.echo("Available profiles:\n")
    for name, config in list_profiles().items():
        typer.echo(f"  {name}")
        typer.echo(f"    Provider: {config.provider.value}")
        if config.model:
            typer.echo(f"    Model: {config.model}")
        if config.base_url:
            typer.echo(f"    Endpoint: {config.base_url}")
        typer.echo()


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
