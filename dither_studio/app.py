from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from flask import Flask, jsonify, request

from .adapters import Adapter
from .buffer import ImageBuffer
from .config import SETTINGS, StudioSettings, configure_logging
from .errors import (
    ExecutionError,
    GraphFormatError,
    ParameterError,
    SourceFetchError,
    SourceNotAllowedError,
    SourceTooLargeError,
    ValidationError,
)
from .infrastructure.network import SourceFetcher, apply_base_and_path, decode_image
from .infrastructure.responses import send_png
from .pipeline.executor import GraphExecutor
from .pipeline.graph import PipelineGraph, linear_graph
from .pipeline.serialize import graph_from_dict, loads
from .processing.palette import PRESET_PALETTES
from .processing.registry import DEFAULT_REGISTRY, TransformRegistry

APP_VERSION = "1.0.0"


def resolve_source_url(args: Mapping[str, Any], settings: StudioSettings = SETTINGS) -> str:
    """Pick the upstream image URL from request arguments.

    ``source_url`` wins; otherwise ``source_base`` and ``source_path`` rebase
    the configured URL, keeping its query string.
    """
    direct = (args.get("source_url") or "").strip()
    if direct:
        return direct
    base = (args.get("source_base") or "").strip() or None
    path = (args.get("source_path") or "").strip() or None
    try:
        return apply_base_and_path(settings.source_url, base_url=base, path_override=path)
    except ValueError as exc:
        raise ParameterError(str(exc)) from None


def check_source_url(url: str, settings: StudioSettings = SETTINGS) -> str:
    """Refuse URLs outside the configured source host and ``ALLOWED_SOURCE_HOSTS``.

    An ``ALLOWED_SOURCE_HOSTS`` entry of ``*`` allows any http(s) host.
    """
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise SourceNotAllowedError(f"Source URL must be an absolute http(s) URL: {url}")
    allowed = set(settings.allowed_source_hosts)
    configured = urlsplit(settings.source_url).hostname
    if configured:
        allowed.add(configured.lower())
    if "*" not in allowed and parts.hostname.lower() not in allowed:
        raise SourceNotAllowedError(f"Source host {parts.hostname!r} is not allowed")
    return url


def _palette_arg(raw: Optional[str]):
    if not raw:
        return None
    if raw in PRESET_PALETTES:
        return raw
    return [color.strip() for color in raw.split(",") if color.strip()]


def _error(status: int, message: str, **extra: Any):
    return jsonify(error=message, **extra), status


def create_app(
    fetcher: Optional[SourceFetcher] = None,
    registry: Optional[TransformRegistry] = None,
    adapters: Optional[Mapping[str, Adapter]] = None,
    settings: Optional[StudioSettings] = None,
) -> Flask:
    configure_logging()
    app = Flask(__name__)
    settings = settings or SETTINGS
    registry = DEFAULT_REGISTRY if registry is None else registry
    adapters = dict(adapters or {})
    fetcher = fetcher or SourceFetcher(max_pixels=settings.max_pixels)

    def checked_executor(graph: PipelineGraph) -> GraphExecutor:
        executor = GraphExecutor(graph, registry=registry, adapters=adapters)
        result = executor.validate()
        if not result.valid:
            raise ValidationError(result.errors)
        return executor

    def render(executor: GraphExecutor, source: ImageBuffer):
        if source.width * source.height > settings.max_pixels:
            raise SourceTooLargeError(
                f"Source is {source.width}x{source.height}; the limit is {settings.max_pixels} pixels"
            )
        return send_png(executor.execute(source))

    def fetch_source(args: Mapping[str, Any]) -> ImageBuffer:
        return fetcher.fetch(check_source_url(resolve_source_url(args, settings), settings))

    @app.errorhandler(ValidationError)
    def validation_failed(exc: ValidationError):
        return _error(422, "Graph validation failed", errors=exc.errors)

    @app.errorhandler(ExecutionError)
    def execution_failed(exc: ExecutionError):
        return _error(400, str(exc.cause), node=exc.node_id)

    @app.errorhandler(GraphFormatError)
    @app.errorhandler(ParameterError)
    def bad_request(exc: Exception):
        return _error(400, str(exc))

    @app.errorhandler(SourceTooLargeError)
    def source_too_large(exc: SourceTooLargeError):
        return _error(413, str(exc))

    @app.errorhandler(SourceNotAllowedError)
    def source_not_allowed(exc: SourceNotAllowedError):
        return _error(403, str(exc))

    @app.errorhandler(SourceFetchError)
    def source_failed(exc: SourceFetchError):
        return _error(502, f"Source Error: {exc}")

    @app.route("/health")
    def health():
        return jsonify(ok=True, version=APP_VERSION, transforms=len(registry))

    @app.route("/algorithms")
    def algorithms():
        return jsonify(algorithms=registry.keys(), adapters=sorted(adapters))

    @app.route("/palettes")
    def palettes():
        return jsonify({key: palette.to_hex() for key, palette in PRESET_PALETTES.items()})

    @app.route("/validate", methods=["POST"])
    def validate():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise GraphFormatError("Expected a JSON graph description")
        graph = graph_from_dict(payload.get("graph", payload))
        result = GraphExecutor(graph, registry=registry, adapters=adapters).validate()
        return jsonify(valid=result.valid, errors=list(result.errors))

    @app.route("/render", methods=["POST"])
    def render_graph():
        graph, options = _graph_from_request()
        executor = checked_executor(graph)
        upload = request.files.get("image")
        if upload is not None:
            try:
                source = decode_image(upload.read(), settings.max_pixels)
            except SourceFetchError as exc:
                return _error(400, str(exc))
        else:
            source = fetch_source(options)
        return render(executor, source)

    @app.route("/render", methods=["GET"])
    def render_single():
        algorithm = request.args.get("algorithm") or settings.default_algorithm
        params = {}
        palette = _palette_arg(request.args.get("palette"))
        if palette is not None:
            params["palette"] = palette
        executor = checked_executor(linear_graph((algorithm, params)))
        return render(executor, fetch_source(request.args))

    return app


def _graph_from_request() -> Tuple[PipelineGraph, Mapping[str, Any]]:
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return graph_from_dict(payload.get("graph", payload)), payload
    raw = request.form.get("graph")
    if not raw:
        raise GraphFormatError("Request must include a pipeline graph")
    return loads(raw), request.form


# Module-level application for WSGI servers (``dither_studio.app:app``).
app = create_app()
application = app
