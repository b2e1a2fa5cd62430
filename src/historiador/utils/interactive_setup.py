"""
First-run interactive configuration.

Prompts for credentials, project and directories, probes the project's
issue types and fields when possible and writes the `.env` file.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from .config_loader import HistoriadorConfig

logger = logging.getLogger(__name__)

console = Console()

API_TOKEN_HELP = "https://id.atlassian.com/manage-profile/security/api-tokens"

ENV_TEMPLATE = """# Configuracion de Jira
JIRA_URL={jira_url}
JIRA_EMAIL={jira_email}
JIRA_API_TOKEN={jira_api_token}

# Configuracion del proyecto
PROJECT_KEY={project_key}
DEFAULT_ISSUE_TYPE={default_issue_type}
SUBTASK_ISSUE_TYPE={subtask_issue_type}
FEATURE_ISSUE_TYPE={feature_issue_type}

# Configuracion de campos Jira (detectados automaticamente)
ACCEPTANCE_CRITERIA_FIELD={acceptance_criteria_field}
FEATURE_REQUIRED_FIELDS='{feature_required_fields}'

# Configuracion de directorios
INPUT_DIRECTORY={input_directory}
LOGS_DIRECTORY={logs_directory}
PROCESSED_DIRECTORY={processed_directory}

# Configuracion avanzada
ROLLBACK_ON_SUBTASK_FAILURE={rollback}
BATCH_SIZE=10
DRY_RUN=false
"""


def _section(title: str) -> None:
    console.print()
    console.print(f"[bold]{title}[/bold]")
    console.print("=" * len(title))
    console.print()


def _require(prompt: str, name: str, password: bool = False) -> str:
    value = Prompt.ask(prompt, password=password, console=console).strip()
    if not value:
        raise ValueError(f"{name} es requerido")
    return value


def select_issue_type(purpose: str, issue_types: list, only_subtasks: bool) -> str:
    """Let the user pick one of the project's issue types."""
    candidates = [t for t in issue_types if t.subtask == only_subtasks]
    if not candidates:
        console.print(f"No se encontraron tipos de issue válidos para {purpose}")
        return Prompt.ask(f"Ingrese manualmente el tipo para {purpose}", console=console).strip()

    console.print(f"Tipos de issue disponibles para {purpose}:")
    console.print()
    for i, issue_type in enumerate(candidates, 1):
        console.print(f"  {i}. {issue_type.name} - {issue_type.description or 'Sin descripción'}")
    console.print()

    while True:
        choice = IntPrompt.ask(
            f"Seleccione el número para {purpose} (1-{len(candidates)})", default=1, console=console
        )
        if 1 <= choice <= len(candidates):
            selected = candidates[choice - 1].name
            console.print(f"[green]✓[/green] Seleccionado: {selected}")
            return selected
        console.print(f"Por favor ingrese un número entre 1 y {len(candidates)}")


def render_env_file(values: dict[str, str]) -> str:
    return ENV_TEMPLATE.format(**values)


def create_interactive_env_file(env_file: Path, client_factory: Optional[type] = None) -> None:
    """
    Prompt for the configuration and write it to `env_file`.

    Args:
        env_file: Destination file
        client_factory: Jira client class used for the probes

    Raises:
        ValueError: If a required value is left empty
        OSError: If the file cannot be written
    """
    from ..jira import JiraClient, JiraClientError, detect_jira_configuration, get_available_issue_types

    client_factory = client_factory or JiraClient

    console.print("[yellow]Archivo .env no encontrado[/yellow]")
    console.print("Iniciando configuracion interactiva...")

    _section("CONFIGURACION DE JIRA")
    jira_url = _require("URL de Jira (ej: https://company.atlassian.net)", "JIRA_URL")
    jira_email = _require("Email de Jira", "JIRA_EMAIL")
    console.print(f"API Token de Jira (obten tu token en: {API_TOKEN_HELP})")
    jira_token = _require("  Token", "JIRA_API_TOKEN", password=True)

    _section("CONFIGURACION DEL PROYECTO")
    project_key = Prompt.ask(
        "Clave del proyecto por defecto (ej: MYPROJ)", default="", console=console
    ).strip()

    client = client_factory(
        HistoriadorConfig(jira_url=jira_url, jira_email=jira_email, jira_api_token=jira_token)
    )

    issue_types = []
    if project_key:
        _section("CONSULTANDO TIPOS DE ISSUE EN JIRA...")
        try:
            issue_types = get_available_issue_types(client, project_key)
        except JiraClientError as e:
            console.print(f"[yellow]⚠[/yellow] No se pudieron obtener los tipos de issue desde Jira: {e}")
            console.print("Usando valores por defecto...")

    if issue_types:
        story_type = select_issue_type("historias", issue_types, only_subtasks=False)
        subtask_type = select_issue_type("subtareas", issue_types, only_subtasks=True)
        feature_type = select_issue_type("Features/Epics", issue_types, only_subtasks=False)
    else:
        story_type = Prompt.ask("Tipo de issue para historias", default="Story", console=console)
        subtask_type = Prompt.ask("Tipo de issue para subtareas", default="Sub-task", console=console)
        feature_type = Prompt.ask("Tipo de issue para Features", default="Epic", console=console)

    _section("CONFIGURACION DE DIRECTORIOS")
    input_dir = Prompt.ask("Directorio de entrada", default="entrada", console=console)
    logs_dir = Prompt.ask("Directorio de logs", default="logs", console=console)
    processed_dir = Prompt.ask("Directorio de procesados", default="procesados", console=console)

    _section("CONFIGURACION AVANZADA")
    rollback = Confirm.ask("Hacer rollback si fallan subtareas?", default=False, console=console)

    acceptance_field = ""
    feature_fields = ""
    if project_key:
        _section("DETECTANDO CONFIGURACION DE JIRA...")
        detected = detect_jira_configuration(client, project_key, story_type, feature_type)
        acceptance_field = detected.acceptance_criteria_field
        feature_fields = detected.feature_required_fields
        if acceptance_field:
            console.print(f"[green]✓[/green] Campo de criterios de aceptación detectado: {acceptance_field}")
        else:
            console.print("[yellow]⚠[/yellow] Campo de criterios de aceptación no detectado")
        if feature_fields:
            console.print("[green]✓[/green] Campos obligatorios para Features detectados")

    content = render_env_file({
        "jira_url": jira_url,
        "jira_email": jira_email,
        "jira_api_token": jira_token,
        "project_key": project_key,
        "default_issue_type": story_type,
        "subtask_issue_type": subtask_type,
        "feature_issue_type": feature_type,
        "acceptance_criteria_field": acceptance_field,
        "feature_required_fields": feature_fields,
        "input_directory": input_dir,
        "logs_directory": logs_dir,
        "processed_directory": processed_dir,
        "rollback": "true" if rollback else "false",
    })
    Path(env_file).write_text(content, encoding="utf-8")
    logger.info(f"Configuration written to {env_file}", extra={"action": "env_created", "file": str(env_file)})

    for directory in (input_dir, logs_dir, processed_dir):
        try:
            Path(directory).mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            console.print(f"[yellow]Warning:[/yellow] Could not create directory {directory}: {e}")

    console.print("[green]Archivo .env creado exitosamente[/green]")
