"""ndots-webhook CLI - run the admission webhook or dry-run a Pod manifest.

This module provides the main CLI entrypoint. ``serve`` runs the webhook
and its metrics endpoint; ``mutate`` applies the same decision engine to a
Pod manifest on disk and prints the JSON Patch it would emit.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ruamel.yaml.error import YAMLError

from ndots_webhook.admission.engine import EngineConfig, MutationDecisionEngine
from ndots_webhook.admission.handler import AdmissionHandler
from ndots_webhook.core.config import DEFAULT_CONFIG_PATH, load_webhook_config
from ndots_webhook.core.errors import ConfigError, PatchApplyError, PodDecodeError
from ndots_webhook.core.schema.pod import PodDescriptor
from ndots_webhook.k8s.manifests import dump_manifest, load_manifest, manifest_annotations
from ndots_webhook.k8s.namespaces import build_namespace_lookup
from ndots_webhook.k8s.patch import apply_patch
from ndots_webhook.logging_config import init_logging
from ndots_webhook.metrics import MetricsRecorder, start_metrics_server

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(
        prog="ndots-webhook",
        description="Kubernetes mutating admission webhook for the Pod DNS ndots option",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the webhook (settings from environment / config.json)
  ndots-webhook serve

  # Preview the patch for a Pod manifest
  ndots-webhook mutate pod.yaml --namespace default

  # Include namespace annotations and write the patched manifest
  ndots-webhook mutate pod.yaml --namespace-annotations ns.yaml --out patched.yaml

Note:
  Settings are read from the JSON config file first, then from environment
  variables such as NDOTS_VALUE, ANNOTATION_MODE or NAMESPACE_EXCLUDE.
""",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Run the admission webhook")
    serve_parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to JSON config file (default: {DEFAULT_CONFIG_PATH})",
    )

    mutate_parser = subparsers.add_parser(
        "mutate", help="Show the patch the webhook would apply to a Pod manifest"
    )
    mutate_parser.add_argument("input", help="Path to Pod manifest (YAML or JSON)")
    mutate_parser.add_argument(
        "--namespace",
        default="",
        help="Namespace to admit the Pod into (default: metadata.namespace)",
    )
    mutate_parser.add_argument(
        "--namespace-annotations",
        help="Namespace manifest whose metadata.annotations are consulted",
    )
    mutate_parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to JSON config file (default: {DEFAULT_CONFIG_PATH})",
    )
    mutate_parser.add_argument("--out", help="Write the patched Pod manifest to this file")
    mutate_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    return parser


def main(argv=None):
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return cmd_serve(args)
    elif args.command == "mutate":
        if args.verbose:
            logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(message)s")
        else:
            logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
        return cmd_mutate(args)
    else:
        parser.print_help()
        return 1


def cmd_serve(args):
    """Handle serve command."""
    try:
        cfg = load_webhook_config(args.config)
    except ConfigError as e:
        print(f"Error: failed to load configuration: {e}", file=sys.stderr)
        return 1

    init_logging(cfg.log_level, cfg.log_format)
    logger.info("loaded configuration", extra=cfg.to_log_dict())

    recorder = MetricsRecorder()
    lookup = build_namespace_lookup(timeout=cfg.timeout)
    engine = MutationDecisionEngine(EngineConfig.from_webhook_config(cfg), namespace_lookup=lookup)
    handler = AdmissionHandler(engine, metrics=recorder)

    # Imported here so `mutate` works without the web stack installed
    from ndots_webhook.server import create_app, run_server

    start_metrics_server(recorder, cfg.metrics_port)
    run_server(create_app(handler, request_timeout=cfg.timeout), cfg)
    return 0


def cmd_mutate(args):
    """Handle mutate command."""
    input_path = Path(args.input)

    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    if args.namespace_annotations and not Path(args.namespace_annotations).exists():
        print(f"Error: Namespace file not found: {args.namespace_annotations}", file=sys.stderr)
        return 1

    try:
        cfg = load_webhook_config(args.config)
    except ConfigError as e:
        print(f"Error: failed to load configuration: {e}", file=sys.stderr)
        return 1

    try:
        ns_annotations = None
        if args.namespace_annotations:
            ns_annotations = manifest_annotations(load_manifest(args.namespace_annotations))
        manifest = load_manifest(str(input_path))
    except (YAMLError, OSError) as e:
        print(f"Error: failed to read manifest: {e}", file=sys.stderr)
        return 1

    try:
        pod = PodDescriptor.from_manifest(manifest, namespace=args.namespace)
    except PodDecodeError as e:
        print(f"Error: failed to decode pod: {e}", file=sys.stderr)
        return 1

    engine = MutationDecisionEngine(
        EngineConfig.from_webhook_config(cfg),
        namespace_lookup=lambda namespace: ns_annotations,
    )
    ops = engine.decide(pod)

    if not ops:
        print("No patch: pod already satisfies the ndots policy or is not selected")
    else:
        print(json.dumps([op.to_json() for op in ops], indent=2))

    if args.out:
        try:
            patched = apply_patch(manifest, ops)
        except PatchApplyError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(dump_manifest(patched), encoding="utf-8")
        print(f"Wrote patched manifest to: {out_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
