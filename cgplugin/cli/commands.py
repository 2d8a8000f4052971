"""CLI commands for cgplugin.

keygen / sign / verify operate on PEM files; serve runs the sign endpoint
with keys from the config file (or --private-key/--public-key).
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from cgplugin import __version__
from cgplugin.config.loader import load_config, resolve_host_keys
from cgplugin.host.signer import HostSigner
from cgplugin.identity.keys import DEFAULT_KEY_BITS, generate_key_pair
from cgplugin.utils.exceptions import PluginLibError, sanitize_error_message
from cgplugin.utils.helpers import ensure_dir

app = typer.Typer(
    name="cgplugin",
    help=f"cgplugin v{__version__} - signed plugin <-> host messaging",
    no_args_is_help=True,
)

console = Console()

PRIVATE_KEY_FILE = "private_key.pem"
PUBLIC_KEY_FILE = "public_key.pem"


def _load_signer(private_key: Path | None, public_key: Path | None, config_path: Path | None) -> HostSigner:
    try:
        if private_key and public_key:
            return HostSigner.from_pem(
                private_key.read_text(encoding="utf-8"),
                public_key.read_text(encoding="utf-8"),
            )
        config = load_config(config_path)
        return HostSigner.from_pem(*resolve_host_keys(config.host))
    except (PluginLibError, OSError) as e:
        console.print(f"[red]Cannot load keys: {sanitize_error_message(str(e))}[/red]")
        raise typer.Exit(2)


def _read_arg(value: str) -> str:
    """Literal value, or file contents when prefixed with @."""
    if value.startswith("@"):
        return Path(value[1:]).read_text(encoding="utf-8")
    return value


@app.command()
def keygen(
    out: Path = typer.Option(Path("."), "--out", "-o", help="Directory for the PEM files"),
    bits: int = typer.Option(DEFAULT_KEY_BITS, "--bits", help="RSA modulus size"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing files"),
) -> None:
    """Generate an RSA key pair (PKCS#8 private, SPKI public)."""
    ensure_dir(out)
    private_path = out / PRIVATE_KEY_FILE
    public_path = out / PUBLIC_KEY_FILE
    if not force and (private_path.exists() or public_path.exists()):
        raise typer.BadParameter(f"key files already exist in {out} (use --force)")
    private_pem, public_pem = generate_key_pair(bits)
    private_path.write_text(private_pem, encoding="utf-8")
    try:
        private_path.chmod(0o600)
    except OSError:
        pass
    public_path.write_text(public_pem, encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote {private_path} and {public_path}")


@app.command()
def sign(
    request: str = typer.Argument(..., help="Pre-request JSON, or @path to a JSON file"),
    private_key: Path = typer.Option(None, "--private-key", help="PKCS#8 PEM file"),
    public_key: Path = typer.Option(None, "--public-key", help="SPKI PEM file"),
    config_path: Path = typer.Option(None, "--config", help="Config file (keys under host.*)"),
) -> None:
    """Sign a pre-request and print {request, signature}."""
    try:
        body = json.loads(_read_arg(request))
    except (json.JSONDecodeError, OSError) as e:
        raise typer.BadParameter(f"invalid request JSON: {e}")
    if not isinstance(body, dict):
        raise typer.BadParameter("request JSON must be an object")
    signer = _load_signer(private_key, public_key, config_path)
    signed = signer.sign_request(body)
    typer.echo(json.dumps(signed.model_dump(), ensure_ascii=False))


@app.command()
def verify(
    response: str = typer.Argument(..., help="Serialized response string, or @path"),
    signature: str = typer.Argument(..., help="Base64 signature"),
    private_key: Path = typer.Option(None, "--private-key", help="PKCS#8 PEM file"),
    public_key: Path = typer.Option(None, "--public-key", help="SPKI PEM file"),
    config_path: Path = typer.Option(None, "--config", help="Config file (keys under host.*)"),
) -> None:
    """Verify a response signature; exit code 1 on mismatch."""
    signer = _load_signer(private_key, public_key, config_path)
    try:
        ok = signer.verify_response(_read_arg(response), signature)
    except PluginLibError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)
    if ok:
        console.print("[green]✓[/green] signature valid")
        return
    console.print("[red]✗ signature invalid[/red]")
    raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int = typer.Option(None, "--port", help="Bind port (default from config)"),
    private_key: Path = typer.Option(None, "--private-key", help="PKCS#8 PEM file"),
    public_key: Path = typer.Option(None, "--public-key", help="SPKI PEM file"),
    config_path: Path = typer.Option(None, "--config", help="Config file"),
) -> None:
    """Run the request-signing endpoint (POST /sign)."""
    import uvicorn

    from cgplugin.host.server import create_sign_app

    config = load_config(config_path)
    signer = _load_signer(private_key, public_key, config_path)
    sign_app = create_sign_app(signer, allowed_plugin_ids=config.host.allowed_plugin_ids or None)
    bind_host = host or config.host.listen_host
    bind_port = port or config.host.listen_port
    console.print(f"[green]✓[/green] Sign endpoint: http://{bind_host}:{bind_port}/sign")
    uvicorn.run(sign_app, host=bind_host, port=bind_port, log_level="info")


if __name__ == "__main__":
    app()
