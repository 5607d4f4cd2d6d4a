"""Контекст приложения и управление зависимостями."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from config import Settings, get_settings
from services.access import ActorResolver, EmployeeEmailResolver
from services.lifecycle_app_service import LifecycleAppService

DependencyName = str


class AppContext:
    """Контекст приложения с ленивым созданием зависимостей."""

    _DEPENDENCY_NAMES: ClassVar[set[str]] = {
        "actor_resolver",
        "lifecycle_service",
    }

    def __init__(
        self,
        settings: Settings,
        *,
        actor_resolver_factory: Callable[[Settings], ActorResolver],
        lifecycle_service_factory: Callable[["AppContext"], LifecycleAppService],
        overrides: dict[str, Any] | None = None,
        instances: dict[str, Any] | None = None,
    ) -> None:
        self._settings = settings
        self._actor_resolver_factory = actor_resolver_factory
        self._lifecycle_service_factory = lifecycle_service_factory
        self._overrides: dict[str, Any] = dict(overrides or {})
        self._instances: dict[str, Any] = dict(instances or {})

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def actor_resolver(self) -> ActorResolver:
        return self._get_dependency(
            "actor_resolver",
            lambda: self._actor_resolver_factory(self._settings),
        )

    @property
    def lifecycle_service(self) -> LifecycleAppService:
        return self._get_dependency(
            "lifecycle_service",
            lambda: self._lifecycle_service_factory(self),
        )

    def override(self, **deps: Any) -> "AppContext":
        """Создать новый контекст с переопределёнными зависимостями."""

        override_args = dict(deps)
        new_settings = override_args.pop("settings", self._settings)

        unknown = set(override_args) - self._DEPENDENCY_NAMES
        if unknown:
            names = ", ".join(sorted(unknown))
            raise ValueError(f"Неизвестные зависимости для переопределения: {names}")

        overrides = dict(self._overrides)
        overrides.update(override_args)
        if new_settings is self._settings:
            # сервис зависит от резолвера: при его подмене пересоздаём и сервис
            dropped = set(override_args)
            if "actor_resolver" in dropped:
                dropped.add("lifecycle_service")
            instances = {
                key: value
                for key, value in self._instances.items()
                if key not in dropped
            }
        else:
            instances = {}
        return AppContext(
            settings=new_settings,
            actor_resolver_factory=self._actor_resolver_factory,
            lifecycle_service_factory=self._lifecycle_service_factory,
            overrides=overrides,
            instances=instances,
        )

    def _get_dependency(
        self, name: DependencyName, factory: Callable[[], Any]
    ) -> Any:
        if name in self._overrides:
            return self._overrides[name]
        if name not in self._instances:
            self._instances[name] = factory()
        return self._instances[name]


_app_context: AppContext | None = None


def _default_actor_resolver(settings: Settings) -> ActorResolver:
    return EmployeeEmailResolver(lambda: settings.current_employee_email)


def _build_default_context() -> AppContext:
    settings = get_settings()
    return AppContext(
        settings=settings,
        actor_resolver_factory=_default_actor_resolver,
        lifecycle_service_factory=lambda context: LifecycleAppService(
            context.actor_resolver
        ),
    )


def get_app_context() -> AppContext:
    """Получить (или создать) синглтон контекста приложения."""

    global _app_context
    if _app_context is None:
        _app_context = _build_default_context()
    return _app_context


__all__ = ["AppContext", "get_app_context"]
