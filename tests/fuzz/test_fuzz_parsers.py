import random
import string

import pytest

from p2d.PARSERS.dockerfile_parser import DockerfileParser

KEYWORDS = ["FROM", "RUN", "COPY", "ADD", "ENV", "LABEL", "WORKDIR", "USER",
            "VOLUME", "SHELL", "CMD", "ENTRYPOINT", "ARG", "EXPOSE"]


def random_string(rng, length):
    return ''.join(rng.choice(string.printable) for _ in range(length))


def random_dockerfile(rng):
    lines = []
    for _ in range(rng.randint(0, 20)):
        keyword = rng.choice(KEYWORDS)
        if rng.random() < 0.3:
            keyword = keyword.lower()
        arguments = rng.choice([
            random_string(rng, rng.randint(0, 40)),
            "--mount=" + random_string(rng, rng.randint(0, 20)) + " ls",
            "--from=" + rng.choice(["0", "1", "builder", ""]) + " a b",
            '["' + random_string(rng, 5).replace('"', "") + '"]',
            "[]",
        ])
        lines.append(f"{keyword} {arguments}")
    return "\n".join(lines)


def test_fuzz_parse_from_string():
    rng = random.Random(1234)
    parser = DockerfileParser()
    for _ in range(200):
        parser.parse_from_string(random_string(rng, rng.randint(0, 1000)))


def test_fuzz_to_stages_only_raises_value_errors():
    """Malformed input is reported as a ValueError, never as an unhandled crash."""
    rng = random.Random(5678)
    parser = DockerfileParser()
    for _ in range(300):
        content = random_dockerfile(rng)
        try:
            stages = parser.to_stages(content)
        except ValueError:
            continue
        assert stages


def test_edge_cases_parsers():
    dockerfile_parser = DockerfileParser()

    # Empty string
    assert dockerfile_parser.parse_from_string("") == []

    # Only whitespace
    assert dockerfile_parser.parse_from_string("   \n\t  ") == []

    # Very long line
    [inst] = dockerfile_parser.parse_from_string("RUN " + "a" * 10000)
    assert len(inst.arguments[0]) == 10000

    # Many line continuations
    [inst] = dockerfile_parser.parse_from_string("RUN echo \\\n" * 100 + "hello")
    assert inst.arguments[0].endswith("hello")


@pytest.mark.parametrize("content", ["FROM []", "FROM alpine\nENV []", "FROM alpine\nWORKDIR []"])
def test_empty_exec_form(content):
    try:
        DockerfileParser().to_stages(content)
    except ValueError:
        pass
