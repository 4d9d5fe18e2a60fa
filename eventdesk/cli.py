import asyncio
import json
from pathlib import Path

import typer

app = typer.Typer(help="eventdesk: event registration portal with AI form intake")


@app.command()
def version():
    """Show version."""
    import importlib.metadata as md

    print(md.version("eventdesk"))


@app.command()
def scan(
    image: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    mime: str = typer.Option(None, help="Override the detected MIME type."),
):
    """Extract student records from a scanned registration form."""
    from portal.app.services.ocr_intake import process_registration_form
    from portal.providers.llm.ollama_vision import to_data_uri

    uri = to_data_uri(image.read_bytes(), mime)
    outcome = asyncio.run(process_registration_form(uri))
    print(json.dumps(outcome.to_wire(), indent=2, ensure_ascii=False))
    if not outcome.success:
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = "0.0.0.0",
    port: int = typer.Option(None, help="Defaults to PORT from the environment."),
):
    """Run the portal API."""
    import uvicorn

    from portal.app.config import settings

    uvicorn.run("portal.app.main:app", host=host, port=port or settings.PORT)


if __name__ == "__main__":
    app()
