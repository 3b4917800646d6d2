"""Mock LLM adapter for testing and local development."""

from __future__ import annotations

import hashlib
import json
import random
import re
from typing import Any

from pydantic import BaseModel, ConfigDict

from ....core.exceptions import GenerationError
from .base_adapter import BaseLLMAdapter

EMBEDDING_DIMENSIONS = 384

# Keyword groups checked in order; the first group with a keyword starting a word picks the reply.
_INTENTS: list[tuple[str, tuple[str, ...]]] = [
    ("greeting", ("hola", "buenos días", "buenas tardes", "buenas noches", "hey")),
    ("balance", ("balance actual", "cuál es mi balance", "balance total", "saldo")),
    ("status", ("cómo están", "como estan", "situación financiera", "finanzas", "estado")),
    ("expenses", ("gasto", "gastar", "categoría", "categoria")),
    ("budget", ("presupuesto", "budget")),
    ("savings", ("ahorro", "ahorrar", "guardar dinero")),
    ("income", ("ingreso", "salario", "sueldo")),
    ("advice", ("consejo", "recomendación", "recomendacion", "sugerencia")),
    ("help", ("ayuda", "help", "qué puedes", "que puedes")),
]

DEFAULT_RESPONSES: dict[str, str] = {
    "greeting": (
        "¡Hola! Soy FinBot, tu asistente financiero personal.\n\n"
        "**¿En qué puedo ayudarte hoy?**\n"
        "• Analizar tu situación financiera\n"
        "• Revisar tus gastos e ingresos\n"
        "• Gestionar presupuestos\n"
        "• Consejos de ahorro e inversión"
    ),
    "balance": "📊 Tu balance total{balance} se calcula sumando el saldo de todas tus cuentas activas.",
    "status": (
        "📊 **Estado de tus Finanzas**\n\n"
        "Tus finanzas se ven estables{balance}. Revisa tus categorías de gasto principales "
        "para encontrar oportunidades de ahorro."
    ),
    "expenses": "💸 Tus gastos se concentran en pocas categorías. Revisa las más altas y fija un límite mensual.",
    "budget": "📋 Mantener tus presupuestos por debajo del 80% de uso te da margen para imprevistos.",
    "savings": "💰 Intenta ahorrar al menos el 20% de tus ingresos mensuales de forma automática.",
    "income": "💵 Tus ingresos son la base de tu plan: separa primero el ahorro y luego asigna los gastos.",
    "advice": "💡 Consejo: registra cada transacción durante un mes para conocer tus patrones de gasto reales.",
    "help": (
        "Puedo ayudarte con:\n"
        "• Balance y estado de tus cuentas\n"
        "• Análisis de gastos por categoría\n"
        "• Seguimiento de presupuestos\n"
        "• Consejos de ahorro"
    ),
    "default": "Entiendo tu consulta. ¿Podrías darme más detalles sobre qué aspecto de tus finanzas quieres revisar?",
}

_BALANCE_PATTERN = re.compile(r"balance(?: total)?:?\s*\$?\s*([\d.,]+)", re.IGNORECASE)


class MockConfig(BaseModel):
    """Configuration for Mock adapter."""

    model_config = ConfigDict(extra="ignore")

    model: str = "test-model"
    failure_rate: float = 0.0  # 0.0 = no failures, 1.0 = always fail
    responses: dict[str, str] | None = None  # Overrides keyed by intent name or "default"


class MockAdapter(BaseLLMAdapter):
    """Deterministic adapter returning canned personal-finance replies.

    Replies are chosen by keyword, JSON is returned when the prompt asks for
    it, and embeddings are derived from the MD5 digest of the text so the
    same input always yields the same vector.
    """

    provider_name = "mock"

    def __init__(self, config: MockConfig | None = None):
        super().__init__("Mock")
        self.config: MockConfig = config or MockConfig()
        self.calls: list[dict[str, Any]] = []

    def initialize(self, config: dict[str, Any]) -> None:
        """Mock needs no external service; only its knobs are read."""
        self.config = MockConfig.model_validate(config)

    def _maybe_fail(self) -> None:
        if self.config.failure_rate > 0 and random.random() < self.config.failure_rate:
            raise GenerationError("Mock adapter simulated failure", provider=self.provider_name)

    @staticmethod
    def detect_intent(prompt: str) -> str:
        """Pick the canned reply group for a prompt."""
        prompt_lower = prompt.lower()
        for intent, keywords in _INTENTS:
            for keyword in keywords:
                if re.search(rf"\b{re.escape(keyword)}", prompt_lower):
                    return intent
        return "default"

    def _reply(self, intent: str, prompt: str) -> str:
        responses = {**DEFAULT_RESPONSES, **(self.config.responses or {})}
        template = responses.get(intent, responses["default"])

        match = _BALANCE_PATTERN.search(prompt)
        balance = f" de ${match.group(1)}" if match else ""
        return template.replace("{balance}", balance)

    async def generate_text(self, prompt: str, system_prompt: str = "", options: dict[str, Any] | None = None) -> str:
        """Generate a canned reply.

        Raises:
            GenerationError: If a failure is simulated
        """
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "options": dict(options or {})})
        self._maybe_fail()

        intent = self.detect_intent(prompt)
        text = self._reply(intent, prompt)

        if "json" in prompt.lower():
            return json.dumps(
                {
                    "response": text,
                    "confidence": 0.95,
                    "suggestions": self._suggestions(intent),
                    "metadata": {"provider": self.provider_name, "model": self.config.model},
                },
                ensure_ascii=False,
            )
        return text

    @staticmethod
    def _suggestions(intent: str) -> list[str]:
        if intent == "expenses":
            return ["Analiza mis categorías de gasto principales", "¿Cómo reducir mis gastos?"]
        if intent == "budget":
            return ["¿Cómo van mis presupuestos activos?", "Crear un presupuesto nuevo"]
        return [
            "¿Cómo están mis finanzas?",
            "Analiza mis patrones de gasto",
            "Dame consejos de ahorro personalizados",
        ]

    async def generate_embeddings(self, text: str) -> list[float]:
        """Generate a deterministic embedding from the text's MD5 digest."""
        self._maybe_fail()
        digest = hashlib.md5(text.encode("utf-8")).hexdigest()
        return [
            int(digest[i % 32 : i % 32 + 2], 16) / 255 - 0.5
            for i in range(EMBEDDING_DIMENSIONS)
        ]

    async def health_check(self) -> bool:
        """Mock service is always available."""
        return True

    def set_failure_rate(self, rate: float) -> None:
        """Set the failure simulation rate, clamped to [0, 1]."""
        self.config.failure_rate = max(0.0, min(1.0, rate))
