"""Dependency injection container for the interview panel engine."""

from __future__ import annotations

from pathlib import Path

from dependency_injector import containers, providers

from .adapters import ExaminationRecordAdapter, ExaminationRecordStore, JsonRecordStore
from .core import (
    AllocationEngine,
    DebounceScheduler,
    EngineContext,
    FacultyRouter,
    ForwardingGate,
    MarkRules,
    PanelRegistry,
    PanelRules,
    RoutingConfig,
    ScoreCalculator,
    ScoringSession,
)
from .notifications import LogNotifier
from .schemas import Scope
from .workflow import AuditLogger, InterviewWorkflow


class InterviewContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    record_adapter = providers.Singleton(ExaminationRecordAdapter)
    store = providers.Singleton(ExaminationRecordStore, adapter=record_adapter)
    notifier = providers.Singleton(LogNotifier)
    scope = providers.Dependency(instance_of=Scope)

    context = providers.Singleton(
        EngineContext,
        store=store,
        notifier=notifier,
        scope=scope,
    )

    calculator = providers.Singleton(ScoreCalculator)
    panel_rules = providers.Singleton(PanelRules)
    registry = providers.Singleton(PanelRegistry, rules=panel_rules)
    scheduler = providers.Singleton(DebounceScheduler)

    scoring_session = providers.Singleton(
        ScoringSession,
        context=context,
        registry=registry,
        calculator=calculator,
        scheduler=scheduler,
        debounce_seconds=config.scoring.debounce_seconds,
    )

    router = providers.Singleton(FacultyRouter)
    forwarding_gate = providers.Singleton(
        ForwardingGate,
        context=context,
        router=router,
        sessions=scoring_session,
    )

    allocation_engine = providers.Singleton(AllocationEngine, context=context)

    audit_logger = providers.Object(None)

    workflow = providers.Factory(
        InterviewWorkflow,
        context=context,
        registry=registry,
        engine=allocation_engine,
        sessions=scoring_session,
        gate=forwarding_gate,
        audit_logger=audit_logger,
    )


def create_container(
    *,
    settings: dict | None = None,
    store: object | None = None,
    records: str | Path | None = None,
    scope: Scope | None = None,
    audit_log: str | Path | None = None,
) -> InterviewContainer:
    """Instantiate container with optional overrides.

    ``store`` replaces the record store outright; ``records`` opens a JSON
    record file instead. The scope comes from ``scope`` or the ``scope``
    settings section.
    """

    container = InterviewContainer()
    settings = settings if isinstance(settings, dict) else {}

    scoring_settings = settings.get("scoring", {})
    if scoring_settings:
        container.config.override({"scoring": scoring_settings})

        rule_settings = {
            key: scoring_settings[key]
            for key in ("max_mark", "max_input_length")
            if key in scoring_settings
        }
        if rule_settings:
            container.calculator.override(
                providers.Singleton(ScoreCalculator, rules=MarkRules(**rule_settings))
            )
        if "max_mark" in scoring_settings:
            container.record_adapter.override(
                providers.Singleton(ExaminationRecordAdapter, max_mark=scoring_settings["max_mark"])
            )

    panel_settings = dict(settings.get("panels", {}))
    if panel_settings:
        if "placeholder_terms" in panel_settings:
            panel_settings["placeholder_terms"] = tuple(panel_settings["placeholder_terms"])
        container.panel_rules.override(providers.Object(PanelRules(**panel_settings)))

    routing_settings = dict(settings.get("routing", {}))
    if routing_settings:
        defaults = RoutingConfig()
        routing_config = RoutingConfig(
            department_codes={
                **defaults.department_codes,
                **routing_settings.get("department_codes", {}),
            },
            destinations={
                **defaults.destinations,
                **{
                    destination: tuple(codes)
                    for destination, codes in routing_settings.get("destinations", {}).items()
                },
            },
            default_destination=routing_settings.get(
                "default_destination", defaults.default_destination
            ),
        )
        container.router.override(providers.Singleton(FacultyRouter, config=routing_config))

    if store is not None:
        container.store.override(providers.Object(store))
    elif records is not None:
        container.store.override(
            providers.Singleton(JsonRecordStore, Path(records), adapter=container.record_adapter)
        )

    scope_settings = settings.get("scope", {})
    if scope is None and scope_settings.get("department"):
        scope = Scope(**scope_settings)
    if scope is not None:
        container.scope.override(providers.Object(scope))

    if audit_log is not None:
        container.audit_logger.override(providers.Object(AuditLogger(Path(audit_log))))

    return container
