"""Intent -> handler registry."""

from __future__ import annotations

from src.handlers.activity import ActivityHandler
from src.handlers.base import HandlerContext, IntentHandler
from src.handlers.event import EventHandler
from src.handlers.meal import MealHandler
from src.handlers.money import MoneyHandler
from src.handlers.simple import (
    CalorieAdjustmentHandler,
    DefaultHandler,
    JournalHandler,
    WorkSessionHandler,
)
from src.intent.schema import Intent


class HandlerRegistry:
    """Maps each intent to its handler; unknown intents get the fallback handler."""

    def __init__(self, fallback: IntentHandler) -> None:
        self._handlers: dict[Intent, IntentHandler] = {}
        self._fallback = fallback

    def register(self, intent: Intent, handler: IntentHandler) -> None:
        self._handlers[intent] = handler

    def resolve(self, intent: Intent | None) -> IntentHandler:
        if intent is None:
            return self._fallback
        return self._handlers.get(intent, self._fallback)


def default_registry(context: HandlerContext) -> HandlerRegistry:
    """Registry wired with the built-in handlers."""

    registry = HandlerRegistry(fallback=DefaultHandler(context))

    event = EventHandler(context)
    money = MoneyHandler(context)
    work = WorkSessionHandler(context)
    registry.register(Intent.reminder, event)
    registry.register(Intent.event, event)
    registry.register(Intent.expense, money)
    registry.register(Intent.income, money)
    registry.register(Intent.work_start, work)
    registry.register(Intent.work_end, work)
    registry.register(Intent.meal, MealHandler(context))
    registry.register(Intent.activity, ActivityHandler(context))
    registry.register(Intent.journal, JournalHandler(context))
    registry.register(Intent.calorie_adjustment, CalorieAdjustmentHandler(context))
    return registry
