import socket
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request, Response, abort
from prometheus_client import CollectorRegistry, Gauge, generate_latest, CONTENT_TYPE_LATEST

from .config import BaseConfig, UpdaterConfig, ConfigurationError
from .models import Snapshot, snapshot_to_dict
from .updater import StatsUpdater

load_dotenv()


def _set_gauges(registry: CollectorRegistry, entry: Snapshot, hostname: str) -> None:
    def gauge(name: str, doc: str, value: Optional[float]) -> None:
        if value is None:
            return
        g = Gauge(name, doc, ["hostname"], registry=registry)
        g.labels(hostname=hostname).set(value)

    gauge("pistats_cpu_usage", "CPU usage percent", entry.cpu.usage_percent)
    gauge("pistats_load_avg_1", "1 minute load average", entry.cpu.load_avg_1)
    gauge("pistats_cpu_temperature_celsius", "CPU temperature", entry.cpu.temperature_c)
    if entry.memory is not None:
        gauge("pistats_memory_used_mb", "Used memory in MB", entry.memory.used_mb)
        gauge("pistats_memory_total_mb", "Total memory in MB", entry.memory.total_mb)
    gauge("pistats_network_rx_bytes_per_second", "Received bytes per second", entry.network.rx_bytes_per_sec)
    gauge("pistats_network_tx_bytes_per_second", "Sent bytes per second", entry.network.tx_bytes_per_sec)
    if entry.filesystems:
        fs_g = Gauge(
            "pistats_filesystem_used_mb",
            "Used space per mounted filesystem in MB",
            ["hostname", "mount_point"],
            registry=registry,
        )
        for fs in entry.filesystems:
            if fs.used_mb is not None:
                fs_g.labels(hostname=hostname, mount_point=fs.mount_point).set(fs.used_mb)


def create_app(config_object: Optional[Dict[str, Any]] = None, updater: Optional[StatsUpdater] = None) -> Flask:
    """Build the Flask app serving the stats history.

    ``updater`` may be passed in (tests use a fake collector); otherwise one is
    built from the ``STATS_*`` settings. Misconfiguration raises
    ``ConfigurationError`` before any thread is started.
    """
    app = Flask(__name__)

    app.config.from_object(BaseConfig)
    if config_object:
        app.config.from_mapping(config_object)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if updater is None:
        updater = StatsUpdater(UpdaterConfig.from_mapping(app.config))
    app.extensions["pistats"] = updater

    @app.route("/api/stats")
    def api_stats():
        entries = updater.get_history()
        if not entries:
            abort(404)
        return jsonify(snapshot_to_dict(entries[-1]))

    @app.route("/api/stats/history")
    def api_stats_history():
        """Return the stats history, oldest first.
        Query params:
          - limit (int): only return the newest `limit` entries
        """
        entries = updater.get_history()
        try:
            limit = int(request.args.get("limit", "0"))
        except ValueError:
            limit = 0
        if limit > 0:
            entries = entries[-limit:]
        return jsonify({"count": len(entries), "entries": [snapshot_to_dict(e) for e in entries]})

    @app.route("/health")
    def health_check():
        running = updater.running
        expected = app.config.get("STATS_UPDATER_ENABLED") and not app.config.get("TESTING")
        if expected and not running:
            # The updater thread died, history is no longer refreshed
            return jsonify({"status": "degraded", "service": "pistats", "updater": False}), 503
        return jsonify({"status": "healthy", "service": "pistats", "updater": running})

    @app.route("/metrics")
    def metrics():
        registry = CollectorRegistry()
        entries = updater.get_history()
        Gauge(
            "pistats_history_entries", "Entries held in the stats history", registry=registry
        ).set(len(entries))
        if entries:
            _set_gauges(registry, entries[-1], socket.gethostname())
        return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)

    @app.errorhandler(404)
    def not_found(err):
        return jsonify({"error": "Not found"}), 404

    @app.after_request
    def set_security_headers(response):
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response

    # Start the background updater when enabled and not testing
    if app.config.get("STATS_UPDATER_ENABLED") and not app.config.get("TESTING"):
        updater.start()

    return app


__all__ = ["create_app", "StatsUpdater", "UpdaterConfig", "ConfigurationError"]
