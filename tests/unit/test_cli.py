"""Tests for the ndots-webhook command-line interface."""

import json
from unittest.mock import patch

import pytest

from ndots_webhook.cli import main as cli
from ndots_webhook.k8s.manifests import load_manifest

POD_YAML = """apiVersion: v1
kind: Pod
metadata:
  name: web
  namespace: apps
spec:
  containers:
  - name: web
    image: nginx
  dnsConfig:
    options:
    - name: ndots
      value: "5"
"""

NAMESPACE_YAML = """apiVersion: v1
kind: Namespace
metadata:
  name: apps
  annotations:
    change-ndots: "false"
"""


@pytest.fixture
def pod_file(tmp_path):
    path = tmp_path / "pod.yaml"
    path.write_text(POD_YAML)
    return path


@pytest.fixture
def missing_config(tmp_path):
    return str(tmp_path / "config.json")


class TestMutateCommand:
    """Tests for `ndots-webhook mutate`."""

    def test_prints_patch(self, pod_file, missing_config, capsys):
        """Test printing the replace operation for an off-target Pod."""
        code = cli.main(["mutate", str(pod_file), "--config", missing_config])

        out = capsys.readouterr().out
        assert code == 0
        assert json.loads(out) == [
            {"op": "replace", "path": "/spec/dnsConfig/options/0/value", "value": "2"}
        ]

    def test_namespace_annotation_respected(self, pod_file, tmp_path, missing_config, capsys):
        """Test that a namespace opt-out suppresses the patch."""
        ns_file = tmp_path / "ns.yaml"
        ns_file.write_text(NAMESPACE_YAML)

        code = cli.main(
            ["mutate", str(pod_file), "--namespace-annotations", str(ns_file), "--config", missing_config]
        )

        assert code == 0
        assert "No patch" in capsys.readouterr().out

    def test_excluded_namespace_flag(self, pod_file, missing_config, capsys):
        """Test that --namespace overrides the manifest namespace."""
        code = cli.main(["mutate", str(pod_file), "--namespace", "kube-system", "--config", missing_config])

        assert code == 0
        assert "No patch" in capsys.readouterr().out

    def test_writes_patched_manifest(self, pod_file, tmp_path, missing_config):
        """Test --out writes a manifest that no longer needs patching."""
        out = tmp_path / "out" / "patched.yaml"

        code = cli.main(["mutate", str(pod_file), "--out", str(out), "--config", missing_config])

        assert code == 0
        patched = load_manifest(str(out))
        assert patched["spec"]["dnsConfig"]["options"][0]["value"] == "2"
        assert cli.main(["mutate", str(out), "--config", missing_config]) == 0

    def test_config_from_environment(self, pod_file, missing_config, monkeypatch, capsys):
        """Test that NDOTS_VALUE drives the desired value."""
        monkeypatch.setenv("NDOTS_VALUE", "5")

        code = cli.main(["mutate", str(pod_file), "--config", missing_config])

        assert code == 0
        assert "No patch" in capsys.readouterr().out

    def test_missing_input(self, tmp_path, capsys):
        """Test a nonexistent input file."""
        code = cli.main(["mutate", str(tmp_path / "absent.yaml")])

        assert code == 1
        assert "Input file not found" in capsys.readouterr().err

    def test_invalid_config(self, pod_file, missing_config, monkeypatch, capsys):
        """Test that an invalid setting fails the command."""
        monkeypatch.setenv("ANNOTATION_MODE", "sometimes")

        code = cli.main(["mutate", str(pod_file), "--config", missing_config])

        assert code == 1
        assert "annotation mode" in capsys.readouterr().err

    def test_missing_namespace_file(self, pod_file, tmp_path, missing_config, capsys):
        """Test a nonexistent --namespace-annotations file."""
        code = cli.main(
            ["mutate", str(pod_file), "--namespace-annotations", str(tmp_path / "nope.yaml"), "--config", missing_config]
        )

        assert code == 1
        assert "Namespace file not found" in capsys.readouterr().err

    def test_malformed_pod_yaml(self, tmp_path, missing_config, capsys):
        """Test that unparseable YAML is reported instead of raising."""
        path = tmp_path / "broken.yaml"
        path.write_text("spec: [unclosed\n")

        code = cli.main(["mutate", str(path), "--config", missing_config])

        assert code == 1
        assert "failed to read manifest" in capsys.readouterr().err

    def test_not_a_pod(self, tmp_path, missing_config, capsys):
        """Test that a non-mapping document is reported."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        code = cli.main(["mutate", str(path), "--config", missing_config])

        assert code == 1
        assert "failed to decode pod" in capsys.readouterr().err


class TestServeCommand:
    """Tests for `ndots-webhook serve`."""

    def test_serve_wires_components(self, missing_config):
        """Test that serve builds the stack and runs both servers."""
        with patch.object(cli, "build_namespace_lookup", return_value=None) as lookup, \
                patch.object(cli, "start_metrics_server") as metrics_server, \
                patch("ndots_webhook.server.run_server") as run_server:
            code = cli.main(["serve", "--config", missing_config])

        assert code == 0
        lookup.assert_called_once_with(timeout=10.0)
        recorder, port = metrics_server.call_args.args
        assert port == 8080
        app, cfg = run_server.call_args.args
        assert cfg.port == 8443
        assert app.state.handler.metrics is recorder

    def test_serve_invalid_config(self, missing_config, monkeypatch, capsys):
        """Test that serve exits 1 on invalid configuration."""
        monkeypatch.setenv("PORT", "0")

        assert cli.main(["serve", "--config", missing_config]) == 1
        assert "failed to load configuration" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    """Test that running without a subcommand shows usage."""
    assert cli.main([]) == 1
    assert "usage" in capsys.readouterr().out
