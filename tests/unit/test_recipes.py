# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from p2d import Image, Scratch
from p2d.RECIPES.golang import Golang
from p2d.RECIPES.rust import Rust


def test_golang_is_an_image_stage():
    assert isinstance(Golang("golang:1.22-alpine"), Image)


def test_golang_compile():
    builder = Golang("golang:1.22-alpine")
    final = builder.compile("/bin/app")

    assert isinstance(final, Scratch)
    plan = final.build().to_dict()
    assert plan["base"] == {"type": "scratch", "args": None}
    assert [c["type"] for c in plan["commands"]] == ["copy", "entrypoint"]
    assert plan["commands"][1]["args"] == ["/bin/app"]

    copy_args = plan["commands"][0]["args"]
    assert copy_args["source"] == "/binary"
    assert copy_args["destination"] == "/bin/app"

    steps = copy_args["from"]["commands"]
    assert [c["type"] for c in steps] == ["run", "workdir", "env", "run"]
    assert steps[0]["args"]["command"] == "apk add git"
    assert steps[2]["args"] == {"key": "CGO_ENABLED", "value": "0"}
    assert steps[3]["args"]["command"] == "go build -o /binary"
    assert [(m["type"], m["options"]["target"]) for m in steps[3]["args"]["mounts"]] == [
        ("bind", "."),
        ("cache", "/root/.cache"),
        ("cache", "/go/pkg/mod"),
    ]


def test_golang_compile_records_on_builder():
    builder = Golang("golang:1.22-alpine")
    builder.compile("/bin/app")
    assert len(builder.commands) == 4


def test_rust_compile_defaults_package_to_binary_name():
    plan = Rust("rust:1.77-alpine").compile("/usr/local/bin/server").build().to_dict()
    steps = plan["commands"][0]["args"]["from"]["commands"]
    command = steps[-1]["args"]["command"]
    assert "--bin server" in command
    assert "cp /app/target/release/server /binary" in command


def test_rust_compile_with_package():
    plan = Rust("rust:1.77-alpine").compile("/app", package="api").build().to_dict()
    steps = plan["commands"][0]["args"]["from"]["commands"]
    mounts = steps[-1]["args"]["mounts"]
    assert "--bin api" in steps[-1]["args"]["command"]
    assert mounts[0]["options"]["rw"] is True
    assert mounts[2]["options"]["target"] == "/app/target"
    assert mounts[2]["options"]["sharing"] == "locked"
