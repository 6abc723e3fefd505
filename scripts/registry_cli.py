#!/usr/bin/env python3
"""Interactive terminal client for the patient registry service."""

import asyncio
import os
import sys

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from app.clients.registry import RegistryClient, RegistryClientConfig
from app.models.errors import RegistryError
from app.models.patient import Patient
from app.services.forms import PatientFormController
from app.services.list_store import PatientListStore
from app.services.management import PatientManagement
from app.services.notifications import Notification, NotificationVariant, Notifier
from app.utils.logging import LogConfig, setup_logging
from app.utils.validation import validate_display_name, validate_email, validate_password

FIELD_LABELS = {
    "full_name": "Full name *",
    "tax_id": "CPF * (000.000.000-00)",
    "birth_date": "Birth date * (YYYY-MM-DD)",
    "phone": "Phone ((00) 00000-0000)",
    "address": "Address",
}


def render_patient_table(patients: list[Patient]) -> Table | Panel:
    """Build the patient list as a rich table."""
    title = f"Patients ({len(patients)})"
    if not patients:
        return Panel("[dim]No patients found[/dim]", title=title, border_style="blue")

    table = Table(title=title, header_style="bold blue", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("CPF")
    table.add_column("Birth date")
    table.add_column("Phone")
    table.add_column("Address", overflow="fold")

    for index, patient in enumerate(patients, start=1):
        table.add_row(
            str(index),
            patient.full_name,
            patient.tax_id,
            patient.birth_date.strftime("%d/%m/%Y"),
            patient.phone or "-",
            patient.address or "-",
        )
    return table


def auth_error_notice(error: RegistryError, signing_up: bool) -> tuple[str, str]:
    """Title and description shown for a failed sign-in or sign-up."""
    if signing_up:
        if "already registered" in error.message:
            return "Error", "This email is already registered"
        return "Error creating account", error.message
    if error.message == "Invalid login credentials":
        return "Error signing in", "Incorrect email or password"
    return "Error signing in", error.message


class RegistryCLI:
    """Terminal UI for the patient management screen."""

    def __init__(self, base_url: str | None = None):
        """Initialize registry CLI."""
        config = RegistryClientConfig(base_url=base_url) if base_url else RegistryClientConfig()
        self.console = Console()
        self.client = RegistryClient(config)
        self.notifier = Notifier(on_notify=self._show_notification)
        self.store = PatientListStore(self.client, self.client, self.notifier)
        self.screen = PatientManagement(self.store, self.notifier)

    async def start(self) -> None:
        """Run the interactive session."""
        self.console.print(
            Panel.fit(
                "[bold blue]Patient Registry[/bold blue]\n"
                "Sign in to manage your patients.\n"
                "Commands: /help, /quit",
                border_style="blue",
            )
        )

        if not await self.client.health():
            self.console.print(f"[red]Cannot reach the registry at {self.client.config.base_url}.[/red]")
            await self.client.aclose()
            return

        try:
            while True:
                if self.client.user_id is None:
                    if not await self._auth_loop():
                        break
                    await self.screen.start()
                    self._show_patients()
                    continue

                command = Prompt.ask("\n[bold cyan]registry[/bold cyan]").strip()
                if not await self._dispatch(command):
                    break
        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")
            await self.client.aclose()

    async def _auth_loop(self) -> bool:
        """Sign in or sign up until a session exists. Returns False to quit."""
        while self.client.user_id is None:
            choice = Prompt.ask("[bold]Sign in, sign up or quit?[/bold]", choices=["in", "up", "quit"], default="in")
            if choice == "quit":
                return False

            email = Prompt.ask("Email")
            password = Prompt.ask("Password", password=True)
            message = validate_email(email) or validate_password(password)

            full_name = ""
            if choice == "up" and not message:
                full_name = Prompt.ask("Full name")
                message = validate_display_name(full_name)

            if message:
                self.notifier.error("Validation error", message)
                continue

            try:
                if choice == "up":
                    await self.client.sign_up(email, password, full_name)
                    self.notifier.success("Account created", "You can sign in now.")
                else:
                    await self.client.sign_in(email, password)
                    self.notifier.success("Signed in", f"Welcome, {self.client.user.full_name}!")
            except RegistryError as e:
                self.notifier.error(*auth_error_notice(e, signing_up=choice == "up"))
        return True

    async def _dispatch(self, command: str) -> bool:
        """Run one command. Returns False to quit."""
        name, _, argument = command.partition(" ")
        name = name.lower()

        if name in ("/quit", "/exit", "quit", "exit"):
            return False
        if name == "/help":
            self._show_help()
        elif name == "/list":
            await self.store.load()
            self._show_patients()
        elif name == "/search":
            self.screen.search(argument.strip())
            self._show_patients()
        elif name == "/new":
            await self._fill_form(self.screen.open_create(), self.screen.submit_create)
            self._show_patients()
        elif name == "/edit":
            patient = self._pick(argument)
            if patient:
                await self._fill_form(self.screen.open_edit(patient), self.screen.submit_edit)
                self._show_patients()
        elif name == "/delete":
            patient = self._pick(argument)
            if patient:
                await self._confirm_delete(patient)
                self._show_patients()
        elif name == "/signout":
            await self.screen.sign_out()
        elif name:
            self.console.print(f"[red]Unknown command: {name}[/red] (try /help)")
        return True

    def _pick(self, argument: str) -> Patient | None:
        """Resolve a row number from the current filtered view."""
        patients = self.screen.visible_patients
        row = int(argument) if argument.strip().isdigit() else 0
        if 1 <= row <= len(patients):
            return patients[row - 1]
        self.console.print(f"[red]Pick a row number between 1 and {len(patients)}.[/red]")
        return None

    async def _fill_form(self, form: PatientFormController, submit) -> None:
        """Prompt every field until the form is submitted or cancelled."""
        self.console.print(Panel.fit(f"[bold]{form.title}[/bold]", border_style="cyan"))
        while form.is_open:
            for field, label in FIELD_LABELS.items():
                error = form.errors.get(field)
                if error:
                    self.console.print(f"[red]{error}[/red]")
                value = form.set_field(field, Prompt.ask(label, default=form.values[field], show_default=True))
                if field in ("tax_id", "phone") and value:
                    self.console.print(f"[dim]  -> {value}[/dim]")

            if await submit():
                return
            if not Confirm.ask("Try again?", default=True):
                form.cancel()

    async def _confirm_delete(self, patient: Patient) -> None:
        self.screen.request_delete(patient)
        while self.screen.delete_gate.pending:
            confirmed = Confirm.ask(
                f"[bold red]Delete patient {patient.full_name}?[/bold red] This action cannot be undone.",
                default=False,
            )
            if not confirmed:
                self.screen.cancel_delete()
            elif not await self.screen.confirm_delete() and not Confirm.ask("Try again?", default=True):
                self.screen.cancel_delete()

    def _show_patients(self) -> None:
        if self.screen.search_term:
            self.console.print(f"[dim]Search: {self.screen.search_term!r}[/dim]")
        self.console.print(render_patient_table(self.screen.visible_patients))

    def _show_notification(self, notification: Notification) -> None:
        style = "red" if notification.variant == NotificationVariant.DESTRUCTIVE else "green"
        self.console.print(f"[{style}][bold]{notification.title}[/bold]: {notification.description}[/{style}]")

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /list - Reload and show your patients
• /search <term> - Filter by name or CPF (empty term clears the filter)
• /new - Register a new patient
• /edit <n> - Edit the patient on row n
• /delete <n> - Delete the patient on row n (asks for confirmation)
• /signout - Sign out
• /quit or /exit - Exit

[bold]Tips:[/bold]
• CPF and phone are formatted as you type: 12345678901 becomes 123.456.789-01
• Press Enter on a field to keep its current value
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the registry CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else None

    # Warnings only unless asked; set LOG_FILE to keep log lines out of the prompts
    setup_logging(LogConfig(level=os.getenv("LOG_LEVEL", "WARNING")))
    cli = RegistryCLI(base_url)
    asyncio.run(cli.start())


if __name__ == "__main__":
    main()
