"""Ask the language model to turn a transcript into a command draft.

The oracle only produces text. Validation happens in ``core.command_draft``;
this module owns prompt assembly and the mapping from OpenAI failures onto the
agent error taxonomy.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from core.errors import NetworkError, OracleError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_TOKENS = 300
DEFAULT_TEMPERATURE = 0.1

# OpenAI error codes that need a specific message; the flag is "recoverable".
_API_ERROR_CODES = {
    "insufficient_quota": ("AI servisi kotası doldu", False),
    "rate_limit_exceeded": ("Çok fazla istek - lütfen bekleyin", True),
    "invalid_api_key": ("AI servisi yapılandırma hatası", False),
}


class CommandOracle(Protocol):
    async def interpret(self, transcript: str, current_date_iso: str, project_names: Sequence[str]) -> str:
        ...


def build_system_prompt(current_date_iso: str, project_names: Sequence[str]) -> str:
    year = current_date_iso[:4]
    projects = ", ".join(project_names) or "(proje yok)"
    return f"""Sen bir görev yönetim asistanısın. Türkçe ve İngilizce karışık ses kayıtlarından yeni görev oluşturma, mevcut görevi güncelleme ve görevi tamamlama komutlarını çıkarıyorsun.

BUGÜNÜN TARİHİ: {current_date_iso} ({year} yılı)

KOMUT TİPLERİ:
1. CREATE: Yeni görev oluştur ("yeni task", "görev ekle", "task oluştur")
2. UPDATE: Mevcut görevi güncelle ("değiştir", "güncelle", "düzenle")
3. COMPLETE: Görevi tamamlandı işaretle ("yapıldı", "tamamlandı", "bitti")

Yanıtı yalnızca aşağıdaki JSON biçimlerinden biriyle ver.

CREATE:
{{
  "commandType": "CREATE",
  "title": "Görev başlığı (zorunlu)",
  "description": "Açıklama (opsiyonel)",
  "projectName": "Proje ismi",
  "assignedPerson": "Atanan kişi",
  "status": "Yapılacak|Yapılıyor|Beklemede|Blocked|Yapıldı",
  "priority": "Yüksek|Orta|Düşük",
  "type": "Operasyon|Yönlendirme|Takip",
  "estimatedDuration": "15dk|30dk|1saat|1.5saat|2saat",
  "deadline": "Tarih (YYYY-MM-DD)",
  "confidence": 0.95
}}

UPDATE:
{{
  "commandType": "UPDATE",
  "taskIdentification": {{"projectName": "Proje ismi", "taskName": "Güncellenecek görev ismi"}},
  "updateFields": {{
    "title": "Yeni başlık",
    "description": "Yeni açıklama",
    "status": "Yeni durum",
    "priority": "Yeni öncelik",
    "estimatedDuration": "Yeni süre",
    "deadline": "Yeni tarih",
    "assignedPerson": "Yeni atanan"
  }},
  "confidence": 0.95
}}

COMPLETE:
{{
  "commandType": "COMPLETE",
  "taskIdentification": {{"projectName": "Proje ismi", "taskName": "Tamamlanan görev ismi"}},
  "confidence": 0.95
}}

Mevcut projeler: {projects}

TARİH KURALLARI:
1. Yıl belirtilmeyen tarihler için {year} yılını kullan
2. "22 ağustos" = "{year}-08-22"
3. "yarın" = bugünden 1 gün sonra
4. "gelecek hafta" = bugünden 7 gün sonra

GENEL KURALLAR:
1. commandType her zaman belirlenmeli
2. CREATE için title, UPDATE ve COMPLETE için taskIdentification zorunlu
3. UPDATE'te sadece değişecek alanları updateFields'a ekle
4. Proje ismini mevcut projelerle eşleştir
5. confidence 0-1 arası
6. Sadece JSON yanıtı ver"""


def build_user_prompt(transcript: str) -> str:
    return f'Ses kaydı metni: "{transcript.strip()}"'


class OpenAICommandOracle:
    """Oracle backed by OpenAI chat completions in JSON mode."""

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        client: Any = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise OracleError("OpenAI API key not configured", recoverable=False)
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def interpret(self, transcript: str, current_date_iso: str, project_names: Sequence[str]) -> str:
        messages = [
            {"role": "system", "content": build_system_prompt(current_date_iso, project_names)},
            {"role": "user", "content": build_user_prompt(transcript)},
        ]
        content = await self._chat_completion(messages)
        if not content or not content.strip():
            raise OracleError("AI servisi boş yanıt döndü")
        return content

    # --- Shared OpenAI helper ------------------------------------------------
    async def _chat_completion(self, messages: List[Dict[str, str]]) -> Optional[str]:
        client = self._get_client()
        logger.debug("Calling oracle model=%s prompt_chars=%d", self._model, sum(len(m["content"]) for m in messages))
        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=messages,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                response_format={"type": "json_object"},
            )
        except APIConnectionError as exc:
            # Timeouts are a subclass of connection errors.
            raise NetworkError(f"Oracle request failed: {exc}") from exc
        except APIError as exc:
            raise _oracle_error(exc) from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            return None
        message = getattr(choices[0], "message", None)
        return getattr(message, "content", None)


def _oracle_error(exc: APIError) -> OracleError:
    code = getattr(exc, "code", None)
    details: Dict[str, Any] = {"code": code} if code else {}
    if isinstance(exc, APIStatusError):
        details["status_code"] = exc.status_code
    if code in _API_ERROR_CODES:
        message, recoverable = _API_ERROR_CODES[code]
        return OracleError(message, details=details, recoverable=recoverable)
    if isinstance(exc, APIStatusError) and exc.status_code in (401, 403):
        return OracleError("AI servisi yapılandırma hatası", details=details, recoverable=False)
    return OracleError(f"Oracle request failed: {exc}", details=details)


__all__ = [
    "CommandOracle",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_MODEL",
    "DEFAULT_TEMPERATURE",
    "OpenAICommandOracle",
    "build_system_prompt",
    "build_user_prompt",
]
