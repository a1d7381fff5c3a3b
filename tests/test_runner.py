"""Data-driven runner tests.

Test cases live in programs/*.tests files. Format:

    === test name
    lox source here
    ---
    out: a line the program printed
    => the session result (one line per line of result)
    ---

A case with no '=>' lines expects a successful run with no value.
"""

from dataclasses import dataclass, field
from pathlib import Path

from conftest import RecordingIO, render
from lox.runner import Runner

PROGRAMS_DIR = Path(__file__).parent / "programs"


@dataclass
class ProgramCase:
    name: str
    source: str
    printed: list[str] = field(default_factory=list)
    result: list[str] = field(default_factory=list)


def read_program_file(path: Path) -> list[ProgramCase]:
    """Read every case in a .tests file, in order."""
    cases: list[ProgramCase] = []
    lines = iter(path.read_text().split("\n"))
    for header in lines:
        if not header.startswith("=== "):
            continue
        source: list[str] = []
        for line in lines:
            if line == "---":
                break
            source.append(line)
        case = ProgramCase(path.stem + "/" + header[4:].strip(), "\n".join(source))
        for line in lines:
            if line == "---":
                break
            if line.startswith("out:"):
                case.printed.append(line[4:].removeprefix(" "))
            elif line.startswith("=>"):
                case.result.append(line[2:].removeprefix(" "))
            elif line.strip():
                raise ValueError(f"{path.name}: unrecognised expectation line {line!r}")
        cases.append(case)
    return cases


def pytest_generate_tests(metafunc):
    if "case" in metafunc.fixturenames:
        cases = [
            case
            for path in sorted(PROGRAMS_DIR.glob("*.tests"))
            for case in read_program_file(path)
        ]
        metafunc.parametrize("case", cases, ids=[c.name for c in cases])


def test_program(case: ProgramCase):
    io = RecordingIO()
    outcome = Runner(io).run(case.source)
    assert render(outcome) == "\n".join(case.result)
    assert io.lines == case.printed
