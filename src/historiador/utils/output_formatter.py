"""Human-readable command output (plain text, also copied to the log)."""

from typing import Optional, TYPE_CHECKING

from ..models import BatchResult, SubtaskResult

if TYPE_CHECKING:
    from ..phases.validate_file import ValidationReport

RULE = "=" * 50


def format_batch_result(result: BatchResult) -> str:
    parts = [_format_header(result), _format_summary(result)]

    if result.has_validation_errors():
        parts.append(_format_validation_errors(result))
    if result.results:
        parts.append(_format_process_results(result))
    if result.errors:
        parts.append(_format_errors(result))

    parts.append(_format_footer(result))
    return "".join(parts)


def format_multiple_batch_results(results: list[BatchResult]) -> str:
    total_processed = sum(r.processed_rows for r in results)
    total_successful = sum(r.successful_rows for r in results)
    total_errors = sum(r.error_rows for r in results)

    lines = [
        "=== RESUMEN GENERAL ===",
        "",
        f"Archivos procesados: {len(results)}",
        f"Historias procesadas: {total_processed}",
        f"[OK] Historias exitosas: {total_successful}",
        f"[ERROR] Historias con errores: {total_errors}",
    ]
    if total_processed > 0:
        lines.append(f"Tasa de exito: {total_successful / total_processed * 100:.1f}%")
    output = "\n".join(lines) + "\n\n" + RULE + "\n\n"

    for i, result in enumerate(results, 1):
        output += f"=== ARCHIVO {i}/{len(results)} ===\n"
        output += format_batch_result(result)
        output += "\n"
    return output


def format_connection_test(error: Optional[Exception]) -> str:
    if error is not None:
        return f"[ERROR] Prueba de conexion fallida: {error}\n"
    return "[OK] Conexion con Jira exitosa\n"


def format_validation(
    file_path: str,
    report: Optional["ValidationReport"],
    error: Optional[Exception],
) -> str:
    output = "=== VALIDACION DE ARCHIVO ===\n\n"
    output += f"Archivo: {file_path}\n"

    if error is not None:
        return output + f"[ERROR] Validacion fallida: {error}\n"

    output += "[OK] Validacion exitosa\n\n"

    if report is not None:
        output += "=== ESTADISTICAS ===\n"
        output += f"Total de historias: {report.total_stories}\n"
        output += f"Con subtareas: {report.with_subtasks}\n"
        output += f"Total subtareas: {report.total_subtasks}\n"
        output += f"Con parent: {report.with_parent}\n"
        if report.invalid_subtasks > 0:
            output += f"[WARNING] Subtareas invalidas: {report.invalid_subtasks}\n"
        output += "\n"

        if report.preview:
            output += f"=== PREVIEW (primeras {report.preview_rows} filas) ===\n"
            output += report.preview + "\n\n"

        output += "=== VALIDACIONES REALIZADAS ===\n"
        output += "[OK] Formato de archivo valido\n"
        output += "[OK] Columnas requeridas presentes\n"
        output += "[OK] Datos estructurales validos\n"
        if report.invalid_subtasks == 0:
            output += "[OK] Todas las subtareas son validas\n"

    return output + RULE + "\n"


def format_diagnosis(required_fields: list[str]) -> str:
    output = "=== DIAGNÓSTICO DE FEATURES ===\n\n"
    if not required_fields:
        return output + "[OK] No se requieren campos adicionales para crear Features\n"

    output += "[WARNING] Se requieren los siguientes campos para crear Features:\n\n"
    for name in required_fields:
        output += f"  • {name}\n"
    output += "\nConfigura estos campos en FEATURE_REQUIRED_FIELDS como JSON en tu .env\n"
    output += "   Ejemplo: FEATURE_REQUIRED_FIELDS='{\"customfield_10100\":{\"id\":\"10001\"}}'\n"
    return output


def format_diagnosis_no_project() -> str:
    return (
        "=== DIAGNÓSTICO DE FEATURES ===\n\n"
        "Para diagnosticar configuración de Features se requiere un proyecto\n\n"
        "Opciones:\n"
        "  • Usar flag: historiador diagnose -p PROYECTO\n"
        "  • Configurar en .env: PROJECT_KEY=PROYECTO\n\n"
        "El diagnóstico verificará qué campos son obligatorios para crear Features automáticamente.\n"
    )


def _format_duration(result: BatchResult) -> str:
    return f"{result.duration.total_seconds() * 1000:.0f}ms"


def _format_header(result: BatchResult) -> str:
    output = "=== PROCESAMIENTO DE ARCHIVO ===\n\n"
    output += f"Archivo: {result.file_name}\n"
    if result.dry_run:
        output += "MODO DE PRUEBA (DRY-RUN)\n"
    output += f"Inicio: {result.start_time.strftime('%Y-%m-%d %H:%M:%S')}\n"
    output += f"Duracion: {_format_duration(result)}\n\n"
    return output


def _format_summary(result: BatchResult) -> str:
    output = "=== RESUMEN ===\n"
    output += f"Total de filas: {result.total_rows}\n"
    output += f"Filas procesadas: {result.processed_rows}\n"
    output += f"[OK] Exitosas: {result.successful_rows}\n"
    output += f"[ERROR] Con errores: {result.error_rows}\n"
    if result.skipped_rows > 0:
        output += f"Saltadas: {result.skipped_rows}\n"
    if result.processed_rows > 0:
        output += f"Tasa de exito: {result.success_rate:.1f}%\n"
    return output + "\n"


def _format_subtasks(subtasks: list[SubtaskResult]) -> str:
    output = ""
    for subtask in subtasks:
        if subtask.success:
            output += f"   [OK] Subtarea: {subtask.description} ({subtask.issue_key})\n"
        else:
            output += f"   [ERROR] Subtarea fallida: {subtask.description} - {subtask.error}\n"
    return output


def _format_process_results(result: BatchResult) -> str:
    output = "=== DETALLE DE PROCESAMIENTO ===\n"
    for row in result.results:
        if row.success:
            output += f"[OK] Fila {row.row_number}: {row.issue_key}\n"
            output += _format_subtasks(row.subtasks)
        else:
            output += f"[ERROR] Fila {row.row_number}: {row.error_message}\n"
            # Rolled back stories still list what happened to their subtasks
            output += _format_subtasks(row.subtasks)
    return output + "\n"


def _format_validation_errors(result: BatchResult) -> str:
    output = "=== ERRORES DE VALIDACION ===\n"
    for error in result.validation_errors:
        output += f"[WARNING] {error}\n"
    return output + "\n"


def _format_errors(result: BatchResult) -> str:
    output = "=== ERRORES ===\n"
    for error in result.errors:
        output += f"[ERROR] {error}\n"
    return output + "\n"


def _format_footer(result: BatchResult) -> str:
    output = RULE + "\n"
    if result.is_successful():
        output += "[OK] Procesamiento completado exitosamente\n"
        issues = result.processed_issues
        if issues:
            output += f"Issues creados: {', '.join(issues)}\n"
    elif result.has_errors():
        output += "[ERROR] Procesamiento completado con errores\n"
    else:
        output += "[WARNING] No se procesaron historias\n"
    return output
