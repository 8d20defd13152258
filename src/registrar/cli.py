"""CLI entry point for the Registrar enrollment engine.

Every command prints its result as JSON. Expected failures (not found,
section full, missing prerequisites, ...) print the error kind with its
details and exit with status 1.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from registrar.config import ConfigError, RegistrarConfig, find_config, load_config
from registrar.exceptions import RegistrarError
from registrar.logging import setup_logging
from registrar.services import Registrar, build_services
from registrar.store import Enrollment, Semester

SEMESTER_CHOICE = click.Choice([s.value for s in Semester], case_sensitive=False)


def enrollment_to_dict(enrollment: Enrollment) -> dict[str, Any]:
    """JSON-ready view of an enrollment and its grades."""
    section = enrollment.section
    return {
        "id": enrollment.id,
        "student_id": enrollment.student_id,
        "section_id": enrollment.section_id,
        "course_code": section.course.code if section is not None else None,
        "semester": section.semester if section is not None else None,
        "year": section.year if section is not None else None,
        "status": enrollment.status,
        "is_repeat": enrollment.is_repeat,
        "enrollment_date": enrollment.enrollment_date.isoformat(),
        "drop_date": enrollment.drop_date.isoformat() if enrollment.drop_date else None,
        "grades": {
            "midterm": enrollment.midterm_grade,
            "final": enrollment.final_grade,
            "homework": enrollment.homework_grade,
            "average": enrollment.average_grade,
            "letter_grade": enrollment.letter_grade,
            "grade_point": enrollment.grade_point,
        },
    }


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _run(ctx: click.Context, action: Callable[[Registrar], Any]) -> None:
    """Build services, run one action and print its result or error."""
    config: RegistrarConfig = ctx.obj["config"]
    services = build_services(config)
    try:
        _echo_json(action(services))
    except RegistrarError as e:
        click.echo(json.dumps(e.to_dict(), indent=2, default=str), err=True)
        sys.exit(1)
    finally:
        services.close()


@click.group()
@click.version_option(package_name="registrar")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to registrar.yaml (auto-detected if not specified)",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable debug logging on the console",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """Registrar - enrollment, prerequisites, schedules and grades."""
    try:
        if config_path is None:
            config_path = find_config()
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    setup_logging(config.logging, config.root_path, verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database and its tables."""
    _run(ctx, lambda services: {"database": ctx.obj["config"].get_db_path(), "ready": True})


@main.command()
@click.argument("student_id")
@click.argument("section_id")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the section lock")
@click.pass_context
def enroll(ctx: click.Context, student_id: str, section_id: str, timeout: float | None) -> None:
    """Enroll STUDENT_ID in SECTION_ID."""
    _run(
        ctx,
        lambda services: enrollment_to_dict(
            services.enrollment.enroll_student(student_id, section_id, timeout=timeout)
        ),
    )


@main.command()
@click.argument("enrollment_id")
@click.argument("student_id")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the section lock")
@click.pass_context
def drop(ctx: click.Context, enrollment_id: str, student_id: str, timeout: float | None) -> None:
    """Drop ENROLLMENT_ID owned by STUDENT_ID."""
    _run(
        ctx,
        lambda services: enrollment_to_dict(
            services.enrollment.drop_enrollment(enrollment_id, student_id, timeout=timeout)
        ),
    )


@main.command()
@click.argument("student_id")
@click.argument("section_id")
@click.pass_context
def eligibility(ctx: click.Context, student_id: str, section_id: str) -> None:
    """Check whether STUDENT_ID may enroll in SECTION_ID, without enrolling."""
    _run(
        ctx,
        lambda services: services.enrollment.check_eligibility(student_id, section_id).to_dict(),
    )


@main.command()
@click.argument("enrollment_id")
@click.option("--midterm", type=float, default=None, help="Midterm grade (0-100)")
@click.option("--final", "final_", type=float, default=None, help="Final grade (0-100)")
@click.option("--homework", type=float, default=None, help="Homework grade (0-100)")
@click.pass_context
def grades(
    ctx: click.Context,
    enrollment_id: str,
    midterm: float | None,
    final_: float | None,
    homework: float | None,
) -> None:
    """Enter grade components for ENROLLMENT_ID."""
    components = {
        name: value
        for name, value in (("midterm", midterm), ("final", final_), ("homework", homework))
        if value is not None
    }
    _run(
        ctx,
        lambda services: enrollment_to_dict(
            services.grades.update_grades(enrollment_id, components)
        ),
    )


@main.command()
@click.argument("student_id")
@click.pass_context
def cgpa(ctx: click.Context, student_id: str) -> None:
    """Show cumulative GPA with the per-semester breakdown."""
    _run(ctx, lambda services: services.grades.compute_cgpa(student_id).to_dict())


@main.command("recompute-gpa")
@click.argument("student_id")
@click.pass_context
def recompute_gpa(ctx: click.Context, student_id: str) -> None:
    """Rebuild the cached GPA fields of STUDENT_ID from enrollment history."""
    _run(ctx, lambda services: services.grades.recompute_student_gpa(student_id).to_dict())


@main.command()
@click.argument("student_id")
@click.option("--semester", type=SEMESTER_CHOICE, required=True, help="Term semester")
@click.option("--year", type=int, required=True, help="Term year")
@click.pass_context
def schedule(ctx: click.Context, student_id: str, semester: str, year: int) -> None:
    """Show the weekly schedule of STUDENT_ID for one term."""
    _run(
        ctx,
        lambda services: [
            entry.to_dict()
            for entry in services.detector.get_student_schedule(
                student_id, semester.lower(), year
            )
        ],
    )


@main.command()
@click.argument("student_id")
@click.pass_context
def transcript(ctx: click.Context, student_id: str) -> None:
    """Show transcript data for STUDENT_ID."""
    _run(ctx, lambda services: services.grades.get_transcript(student_id).to_dict())


if __name__ == "__main__":
    main()
