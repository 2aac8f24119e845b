"""
Offline console demo: walks the booking core through scripted scenarios.

Uses the real permission model, calendar policy, availability engine and
booking workflow on top of in-memory repositories. No database, no
network, no notification delivery (events are printed from an outbox).

Usage:
    python console_demo.py
    python console_demo.py --scenario flexible
    python console_demo.py --scenario permissions
"""

import argparse

from booking_core.booking.workflow import BookingWorkflow
from booking_core.config import settings
from booking_core.errors import OperationResult
from booking_core.logging_context import request_context
from booking_core.notifications import OutboxNotifier
from booking_core.schemas.booking_schema import DurationType, ServiceSpec
from booking_core.schemas.principal_schema import Capability, Principal, Role
from booking_core.schemas.tenant_schema import WeeklySchedule
from booking_core.storage.repositories import Repositories
from booking_core.tools.tenants import TenantAdmin

BLUE = "\033[94m"
GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_DATE = "2024-02-13"  # a Tuesday
HOLIDAY = "2024-02-14"


class ConsoleSession:
    """Seeds one tenant and replays scenarios against it."""

    def __init__(self) -> None:
        self.repos = Repositories.in_memory()
        self.outbox = OutboxNotifier()
        self.admin = TenantAdmin(self.repos)
        self.workflow = BookingWorkflow(self.repos, notifier=self.outbox)

        self.owner = Principal(id="owner", role=Role.PLATFORM_OWNER)
        self.repos.principals.put(self.owner)
        self.operator = self._expect(self.admin.create_operator(
            self.owner,
            {
                Capability.ADD_TENANTS: True,
                Capability.MANAGE_SCHEDULE: True,
                Capability.MANAGE_SERVICES: True,
                Capability.MANAGE_STAFF: True,
            },
            operator_id="operator-1",
        ))
        self.tenant = self._expect(self.admin.create_tenant(
            self.operator,
            "Barber Zone",
            WeeklySchedule.uniform(
                ["monday", "tuesday", "wednesday", "thursday", "friday"], "09:00", "18:00"
            ),
        ))
        self.provider = self._expect(self.admin.add_provider(
            self.operator,
            self.tenant.id,
            "Abebe",
            ["tuesday", "wednesday", "thursday", "friday"],
            ("10:00", "17:00"),
        ))
        self.haircut = self._expect(self.admin.add_service(
            self.operator,
            self.tenant.id,
            ServiceSpec(name="Haircut", duration_type=DurationType.FIXED, fixed_duration_minutes=30),
        ))
        self.consult = self._expect(self.admin.add_service(
            self.operator,
            self.tenant.id,
            ServiceSpec(name="Styling consultation", duration_type=DurationType.FLEXIBLE),
        ))

    @staticmethod
    def _expect(result: OperationResult):
        if not result.success:
            raise RuntimeError(f"Demo seed failed: {result.error} {result.message}")
        return result.value

    def step(self, title: str) -> None:
        print(f"\n{BLUE}{BOLD}> {title}{RESET}")

    def show(self, result: OperationResult) -> None:
        if result.success:
            print(f"{GREEN}  ok{RESET} {result.message or type(result.value).__name__}")
        else:
            print(f"{RED}  {result.error.value}{RESET} {DIM}{result.message}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _customer(self, name: str) -> dict:
        return {"name": name, "email": f"{name.lower()}@example.com", "phone": "+251 91 234 5678"}

    def scenario_fixed(self) -> None:
        self.step("Direct booking 14:00 for a 30-minute haircut")
        self.show(self.workflow.book_direct(
            self.tenant.id, self.haircut.id, self.provider.id, DEMO_DATE, "14:00",
            self._customer("Hana"),
        ))
        self.step("Direct booking 14:15 (overlaps)")
        self.show(self.workflow.book_direct(
            self.tenant.id, self.haircut.id, self.provider.id, DEMO_DATE, "14:15",
            self._customer("Dawit"),
        ))
        self.step("Direct booking 14:30 (back-to-back)")
        self.show(self.workflow.book_direct(
            self.tenant.id, self.haircut.id, self.provider.id, DEMO_DATE, "14:30",
            self._customer("Dawit"),
        ))
        slots = list(self.workflow.availability.list_open_slots(
            self.tenant.id, self.provider.id, DEMO_DATE, 30, 30
        ))
        self.system_log(f"Open 30-minute slots on {DEMO_DATE}: {', '.join(slots)}")

    def scenario_flexible(self) -> None:
        self.step("Customer submits a flexible consultation request")
        submitted = self.workflow.submit(
            self.tenant.id, self.consult.id, DEMO_DATE, "afternoon", self._customer("Selam")
        )
        self.show(submitted)
        request_id = submitted.value.id

        self.step("Operator confirms without a duration")
        self.show(self.workflow.confirm(request_id, self.operator, self.provider.id, DEMO_DATE, "15:00"))

        self.step("Operator confirms 15:00 for 90 minutes")
        confirmed = self.workflow.confirm(
            request_id, self.operator, self.provider.id, DEMO_DATE, "15:00", 90
        )
        self.show(confirmed)

        self.step("Operator confirms the same request again")
        self.show(self.workflow.confirm(
            request_id, self.operator, self.provider.id, DEMO_DATE, "11:00", 30
        ))

        self.step("Operator cancels the booking")
        self.show(self.workflow.cancel(confirmed.value.id, self.operator))

    def scenario_permissions(self) -> None:
        rival = self._expect(self.admin.create_operator(
            self.owner, {Capability.MANAGE_SCHEDULE: True}, operator_id="operator-2"
        ))
        submitted = self.workflow.submit(
            self.tenant.id, self.consult.id, DEMO_DATE, "", self._customer("Meron")
        )

        self.step("Another operator confirms a request on a tenant it does not own")
        self.show(self.workflow.confirm(
            submitted.value.id, rival, self.provider.id, DEMO_DATE, "10:00", 60
        ))
        self.step("Same operator confirms a request id that does not exist")
        self.show(self.workflow.confirm("REQ-MISSING", rival, self.provider.id, DEMO_DATE, "10:00", 60))

        self.step(f"Owner blocks {HOLIDAY} as a holiday, then a booking is attempted")
        self.show(self.admin.block_date(self.owner, self.tenant.id, HOLIDAY, None, "Holiday"))
        self.show(self.workflow.book_direct(
            self.tenant.id, self.haircut.id, self.provider.id, HOLIDAY, "11:00",
            self._customer("Meron"),
        ))
        self.system_log(
            f"Tenants visible to {rival.id}: {[t.name for t in self.admin.list_tenants(rival)]}"
        )

    SCENARIOS = {
        "fixed": scenario_fixed,
        "flexible": scenario_flexible,
        "permissions": scenario_permissions,
    }

    def run_scenario(self, scenario: str) -> None:
        """Play a single pre-scripted scenario."""
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.app_name.upper()} - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Tenant: {self.tenant.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        with request_context(f"DEMO-{scenario}"):
            self.SCENARIOS[scenario](self)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        events = [e.event_type.value for e in self.outbox.events]
        print(f"{DIM}  Notifications: {events or 'none'}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        self.outbox.clear()

    def run(self) -> None:
        for scenario in self.SCENARIOS:
            self.run_scenario(scenario)


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Play one scenario instead of all of them",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
