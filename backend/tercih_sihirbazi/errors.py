"""Uygulamaya özgü hata sınıfları."""

from __future__ import annotations


class TercihError(Exception):
    """Tüm uygulama hatalarının tabanı."""


class InputValidationError(TercihError):
    """Boş veya hatalı oturum kimliği / mesaj metni."""


class StateCorruptionError(TercihError):
    """Var olmayan bir oturum üzerinde değişiklik denemesi (yalnızca strict modda)."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Oturum bulunamadı: {session_id}")
        self.session_id = session_id


class CatalogError(TercihError):
    """Referans katalog dosyası okunamadı veya biçimi hatalı."""
