"""
Application entry point — the `dfe-core` command line.

Composition root: creates concrete adapters from settings and injects them
into the resolver. This is the ONLY place where concrete store and loader
classes are instantiated.

Commands:
  generate                 build an access key from its fields
  validate KEY             exit 0 if the key's check digit matches, 1 otherwise
  format KEY               print the key in groups of four
  parse KEY                print the fields of a key
  certificate info         resolve the configured certificate and print its metadata
  certificate list         list certificates in the installed store
  certificate select       pick an installed certificate and print its serial

Logs go to stderr through structlog; command output goes to stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from dataclasses import asdict, replace
from datetime import date
from typing import Any

import structlog
from pydantic import ValidationError
from railway import ErrorCode
from railway.failure import FailureDescription
from railway.result import Result

from dfe_core import __version__
from dfe_core.access_key import format_key, generate, parse, validate
from dfe_core.adapters.directory_store import DirectoryCertificateStore
from dfe_core.adapters.pkcs12_loader import Pkcs12ContainerLoader
from dfe_core.adapters.token_store import Pkcs11CertificateStore
from dfe_core.cache import CertificateMaterialCache
from dfe_core.config import AppSettings, CertificateSettings
from dfe_core.domain.models import AccessKey, CertificateMaterial, CertificateSource, InstalledCertificate
from dfe_core.domain.ports import CertificateStore
from dfe_core.resolver import CertificateResolver


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for human-readable console logging on stderr.

    Unknown level names fall back to INFO.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # Loggers bind sys.stderr when created, so they are not cached.
        cache_logger_on_first_use=False,
    )


def _create_store(settings: CertificateSettings) -> CertificateStore | None:
    if settings.pkcs11_library:
        return Pkcs11CertificateStore(settings.pkcs11_library, token_label=settings.token_label)
    if settings.store_dir is not None:
        return DirectoryCertificateStore(settings.store_dir)
    return None


def create_resolver(settings: AppSettings) -> CertificateResolver:
    return CertificateResolver(
        loader=Pkcs12ContainerLoader(),
        store=_create_store(settings.certificate),
        cache=CertificateMaterialCache(),
    )


def _emit(text: str) -> None:
    print(text)  # noqa: T201


def _report(result: Result[Any], render: Callable[[Any], None]) -> int:
    """Print a successful value with `render`, or log the failure. Returns the exit code."""

    def _failed(error: FailureDescription) -> int:
        log = structlog.get_logger()
        log.error("cli.failed", code=error.code.value, error=error.message)
        log.debug("cli.failure_detail", detail=error.full_stack_trace())
        return 1

    def _succeeded(value: Any) -> int:
        render(value)
        return 0

    return result.either(_succeeded, _failed)


# ─────────────────────── Access key commands ───────────────────────


def _cmd_generate(args: argparse.Namespace, _settings: AppSettings) -> int:
    result = generate(
        state=args.state,
        issue_date=args.issue_date,
        issuer_tax_id=args.tax_id,
        model=args.model,
        series=args.series,
        number=args.number,
        emission_mode=args.emission_mode,
        numeric_control=args.numeric_control,
    )
    return _report(result, lambda key: _emit(format_key(key.digits) if args.formatted else key.digits))


def _cmd_validate(args: argparse.Namespace, _settings: AppSettings) -> int:
    ok = validate(args.key)
    _emit("valid" if ok else "invalid")
    return 0 if ok else 1


def _cmd_format(args: argparse.Namespace, _settings: AppSettings) -> int:
    _emit(format_key(args.key))
    return 0


def _cmd_parse(args: argparse.Namespace, _settings: AppSettings) -> int:
    def _render(key: AccessKey) -> None:
        for name, value in asdict(key.fields).items():
            _emit(f"{name}: {value}")

    return _report(parse(args.key), _render)


# ─────────────────────── Certificate commands ───────────────────────


def _source_from(args: argparse.Namespace, settings: AppSettings) -> CertificateSource:
    source = settings.certificate.to_source()
    if args.reference is not None:
        source = replace(source, data=None, reference=args.reference)
    if args.password is not None:
        source = replace(source, password=args.password)
    return source


def _cmd_certificate_info(args: argparse.Namespace, settings: AppSettings) -> int:
    def _render(material: CertificateMaterial) -> None:
        _emit(f"subject: {material.subject_name}")
        _emit(f"taxpayer_id: {material.taxpayer_id or '-'}")
        _emit(f"serial: {material.serial_number}")
        _emit(f"expires: {material.expiration_date.isoformat()}")
        _emit(f"expired: {'yes' if material.is_expired(date.today()) else 'no'}")
        _emit(f"sha256: {material.fingerprint}")

    resolver = create_resolver(settings)
    return _report(resolver.get_metadata(_source_from(args, settings)), _render)


def _render_listing(certificates: list[InstalledCertificate]) -> None:
    for index, cert in enumerate(certificates, start=1):
        _emit(f"{index}. {cert.serial_number}  {cert.expiration_date.isoformat()}  {cert.subject_name}")


def _pin_from(args: argparse.Namespace, settings: AppSettings) -> str:
    if args.password is not None:
        return args.password
    return settings.certificate.password.get_secret_value()


def _cmd_certificate_list(args: argparse.Namespace, settings: AppSettings) -> int:
    resolver = create_resolver(settings)
    return _report(resolver.list_installed(pin=_pin_from(args, settings)), _render_listing)


def _choose(certificates: list[InstalledCertificate]) -> Result[InstalledCertificate]:
    if not certificates:
        return Result.failure(ErrorCode.NOT_FOUND, "The installed store holds no certificates")
    _render_listing(certificates)
    answer = input(f"Select a certificate [1-{len(certificates)}]: ").strip()
    if not answer.isdigit() or not 1 <= int(answer) <= len(certificates):
        return Result.failure(ErrorCode.VALIDATION_ERROR, f"Invalid selection: {answer!r}")
    return Result.success(certificates[int(answer) - 1])


def _cmd_certificate_select(args: argparse.Namespace, settings: AppSettings) -> int:
    resolver = create_resolver(settings)
    selected = resolver.list_installed(pin=_pin_from(args, settings)).flat_map(_choose)
    return _report(selected, lambda cert: _emit(cert.serial_number))


# ─────────────────────── Argument parsing ───────────────────────


def _issue_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dfe-core", description="DF-e access keys and certificates")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    gen = commands.add_parser("generate", help="Build an access key")
    gen.add_argument("--state", type=int, required=True, help="IBGE state code, e.g. 35")
    gen.add_argument("--issue-date", type=_issue_date, required=True, help="YYYY-MM-DD")
    gen.add_argument("--tax-id", required=True, help="14-digit issuer CNPJ")
    gen.add_argument("--model", type=int, required=True, help="Document model, e.g. 55")
    gen.add_argument("--series", type=int, required=True)
    gen.add_argument("--number", type=int, required=True)
    gen.add_argument("--emission-mode", type=int, default=1)
    gen.add_argument("--numeric-control", type=int, required=True)
    gen.add_argument("--formatted", action="store_true", help="Print in groups of four")
    gen.set_defaults(handler=_cmd_generate)

    for name, handler, help_text in (
        ("validate", _cmd_validate, "Check an access key"),
        ("format", _cmd_format, "Print a key in groups of four"),
        ("parse", _cmd_parse, "Print the fields of an access key"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("key")
        sub.set_defaults(handler=handler)

    cert = commands.add_parser("certificate", help="Certificate operations")
    cert_commands = cert.add_subparsers(dest="certificate_command", required=True)
    for name, handler, help_text in (
        ("info", _cmd_certificate_info, "Print metadata of the configured certificate"),
        ("list", _cmd_certificate_list, "List installed certificates"),
        ("select", _cmd_certificate_select, "Pick an installed certificate, print its serial"),
    ):
        sub = cert_commands.add_parser(name, help=help_text)
        sub.add_argument("--reference", default=None, help="File path, serial or subject (subject:TEXT)")
        sub.add_argument("--password", default=None, help="Container password or token PIN")
        sub.set_defaults(handler=handler)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load settings, run one command."""
    args = build_parser().parse_args(argv)

    try:
        settings = AppSettings()
    except ValidationError as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        return 1

    configure_structlog(args.log_level or settings.log_level)
    structlog.get_logger().debug("app.command", command=args.command, version=__version__)
    return args.handler(args, settings)


if __name__ == "__main__":
    sys.exit(main())
