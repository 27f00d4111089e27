import logging
from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel, Field

ToastType = Literal["success", "error"]


class Toast(BaseModel):
    type: ToastType = Field()
    msg: str = Field(strict=True)


class Notifier(ABC):
    @abstractmethod
    def notify(self, toast: Toast): ...

    def success(self, msg: str):
        self.notify(Toast(type="success", msg=msg))

    def error(self, msg: str):
        self.notify(Toast(type="error", msg=msg))


class ToastLogger(Notifier):
    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)

    def notify(self, toast: Toast):
        if toast.type == "error":
            self._logger.warning(toast.msg)
        else:
            self._logger.info(toast.msg)


class ToastCollector(ToastLogger):
    def __init__(self, logger: logging.Logger | None = None):
        super().__init__(logger)
        self.toasts: list[Toast] = []

    def notify(self, toast: Toast):
        super().notify(toast)
        self.toasts.append(toast)

    @property
    def last(self) -> Toast | None:
        return self.toasts[-1] if self.toasts else None

    def messages(self, toast_type: ToastType | None = None) -> list[str]:
        return [toast.msg for toast in self.toasts if toast_type is None or toast.type == toast_type]
