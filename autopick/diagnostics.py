from dataclasses import dataclass, field
from typing import List, Tuple

from colorama import Fore

from .config import print


@dataclass
class DiagnosticReport:
    checks: List[Tuple[str, bool, str]] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(ok for _, ok, _ in self.checks)

    def add(self, name: str, ok: bool, detail: str = ""):
        self.checks.append((name, ok, detail))


def _probe(fn):
    try:
        return bool(fn()), ""
    except Exception as e:
        return False, f"{type(e).__name__}: {e}"


def run_diagnostics(reader, actuator, run_state) -> DiagnosticReport:
    """Check that the reader, the actuator and the settings are usable.

    Purely advisory: the result is printed and returned, the loop never stops
    because of it.
    """
    print(f"{Fore.CYAN}[*] Running capability diagnostics...")
    report = DiagnosticReport()

    ok, detail = _probe(reader.is_available)
    if ok:
        detail = reader.describe()
    report.add("reader", ok, detail or ("screen text readable" if ok else "cannot read the active window"))

    ok, detail = _probe(actuator.is_available)
    report.add("actuator", ok, detail or ("gesture target reachable" if ok else "gesture target not reachable"))

    ok, detail = _probe(actuator.screen_size)
    report.add("screen", ok, detail)

    settings = run_state.settings
    report.add("settings", settings is not None, "" if settings else "no settings available")
    if settings is not None and settings.click_point is None:
        report.add("click_point", False, "no click point defined, clicks will be skipped")

    for name, ok, detail in report.checks:
        if ok:
            print(f"{Fore.GREEN}    [+] {name}: OK {detail}")
        else:
            print(f"{Fore.RED}    [!] {name}: FAILED {detail}")

    if report.passed:
        print(f"{Fore.GREEN}[+] All diagnostic checks PASSED.")
    else:
        print(f"{Fore.YELLOW}[!] Some diagnostic checks FAILED. Continuing anyway.")
    return report
