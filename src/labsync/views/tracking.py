"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Public license application tracking.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..datasets import normalize_tracking_number, track_application
from ..datasets.models import LicenseApplication
from .base import RenderCallback, View

if TYPE_CHECKING:
    from ..app import PortalRuntime

_STATUS_STEPS = {"submitted": 1, "under_review": 2, "approved": 3}
_STATUS_TEXT = {"submitted": "Submitted", "under_review": "Under Review", "approved": "Approved"}


def status_step(status: str) -> int:
    """Progress step shown for an application status (0 when unknown)."""
    return _STATUS_STEPS.get(status, 0)


def status_text(status: str) -> str:
    return _STATUS_TEXT.get(status, status)


class TrackingView(View):
    """Look up an application by tracking number."""

    name = "tracking"

    def __init__(
        self,
        runtime: "PortalRuntime",
        *,
        on_render: RenderCallback | None = None,
    ) -> None:
        super().__init__(runtime, on_render=on_render)
        self.searched = False

    @property
    def application(self) -> LicenseApplication | None:
        return self.data("application")

    async def track(self, tracking_number: str) -> LicenseApplication | None:
        """
        Fetch the application for `tracking_number`.

        Returns ``None`` when nothing matches. Blank input and fetch errors
        are reported through the notifier; fetch errors are re-raised.
        """
        notifier = self.runtime.notifier
        if not normalize_tracking_number(tracking_number):
            notifier.error("Error", "Please enter a tracking number")
            return None
        if not self.mounted:
            self.mount()

        self.searched = True
        observer = self.use("application", track_application(self.runtime.store, tracking_number))
        entry = await observer.wait()
        if entry is not None and entry.status == "error" and entry.error is not None:
            notifier.error("Error", str(entry.error))
            raise entry.error
        application = observer.data
        if application is None:
            notifier.error("Not Found", "No application found with this tracking number")
        return application
