"""Flet controller window for BreakShield."""
import logging

import flet as ft

from ..exceptions import ConfigurationError
from ..services.lifecycle import Decision, Phase
from ..services.poller import ForegroundPoller
from ..utils.helpers import format_countdown, get_motivational_quote, selection_summary

logger = logging.getLogger(__name__)

PHASE_TITLES = {
    Phase.IDLE: "Protection is off",
    Phase.ALLOWANCE: "Enjoy it while it lasts",
    Phase.BLOCKING: "Taking a break 🌱",
    Phase.BREAK_COMPLETE: "Break complete! 🌱",
}


class BreakShieldUI:
    """Main UI controller."""

    def __init__(self, service):
        self.service = service
        self.page = None
        self.poller = ForegroundPoller(
            service, on_tick=self._render, on_break_complete=self._on_break_complete
        )

    def main(self, page: ft.Page):
        """Main app entry point."""
        self.page = page
        page.title = "BreakShield"
        page.theme_mode = ft.ThemeMode.DARK
        page.padding = 30
        page.window.width = 420
        page.window.height = 560

        self.phase_text = ft.Text(size=22, weight=ft.FontWeight.BOLD)
        self.countdown_text = ft.Text(size=56, weight=ft.FontWeight.BOLD, color="#4ade80")
        self.summary_text = ft.Text(size=14, color=ft.Colors.WHITE70)
        self.enabled_switch = ft.Switch(label="Protection", on_change=self._on_toggle)
        self.restart_button = ft.ElevatedButton(
            "Go another round", on_click=self._on_restart, visible=False
        )

        page.add(
            ft.Column([
                self.phase_text,
                self.countdown_text,
                self.summary_text,
                ft.Container(height=20),
                self.enabled_switch,
                self.restart_button,
                ft.Container(height=20),
                ft.Text(get_motivational_quote(), italic=True, color=ft.Colors.WHITE54),
            ], horizontal_alignment=ft.CrossAxisAlignment.CENTER)
        )

        page.on_app_lifecycle_state_change = self._on_lifecycle_change
        page.on_disconnect = lambda _: self.poller.pause()
        self.poller.resume()

    def _on_lifecycle_change(self, e):
        if e.state in (ft.AppLifecycleState.SHOW, ft.AppLifecycleState.RESUME):
            self.poller.resume()
        elif e.state in (ft.AppLifecycleState.HIDE, ft.AppLifecycleState.PAUSE):
            self.poller.pause()

    def _render(self, decision: Decision):
        if not self.page:
            return
        config = self.service.store.load_config()
        status_word = "selected for block" if decision.phase is Phase.ALLOWANCE else "blocked"

        self.phase_text.value = PHASE_TITLES[decision.phase]
        self.countdown_text.value = format_countdown(decision.remaining)
        self.countdown_text.visible = decision.phase in (Phase.ALLOWANCE, Phase.BLOCKING)
        self.summary_text.value = selection_summary(config.selection, status_word)
        self.enabled_switch.value = config.enabled
        self.restart_button.visible = decision.phase is Phase.BREAK_COMPLETE
        self.page.update()

    def _on_break_complete(self, decision: Decision):
        if not self.page:
            return
        self.page.open(ft.SnackBar(ft.Text("Your break is complete! Ready to go another 5 minutes?")))

    def _on_toggle(self, e):
        try:
            if self.enabled_switch.value:
                self.service.enable()
            else:
                self.service.disarm()
        except ConfigurationError as err:
            self.enabled_switch.value = False
            self.page.open(ft.SnackBar(ft.Text(str(err))))
        self.poller.tick()

    def _on_restart(self, e):
        self.service.arm()
        self.poller.tick()


def create_ui(service):
    """Create the flet target for the controller window."""
    ui = BreakShieldUI(service)
    return ui.main
