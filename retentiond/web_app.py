"""
Flask web application for the retention cleanup trigger.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from flask import Flask, Response, jsonify, request
from prometheus_client import CONTENT_TYPE_LATEST

from retentiond.config.settings import RetentionSettings, load_settings
from retentiond.cron_auth import is_authorized
from retentiond.monitoring.retention_metrics import RetentionMetricsCollector
from retentiond.storage.blob_client import create_blob_store
from retentiond.storage.interfaces import BlobStore
from retentiond.storage.retention_config import RetentionConfigError
from retentiond.storage.retention_manager import create_retention_manager
from retentiond.storage.retention_models import CleanupReport

StoreFactory = Callable[[RetentionSettings], BlobStore]


def default_store_factory(settings: RetentionSettings) -> BlobStore:
    return create_blob_store(
        settings.require_blob_token(),
        api_url=settings.blob_api_url,
        page_size=settings.list_page_size,
        max_retries=settings.max_retries,
    )


class RetentionWebApp:
    """Flask application exposing the scheduled cleanup endpoint."""

    def __init__(
        self,
        settings: RetentionSettings,
        store_factory: Optional[StoreFactory] = None,
        metrics: Optional[RetentionMetricsCollector] = None,
    ):
        self.app = Flask(__name__)
        self.settings = settings
        self.store_factory = store_factory or default_store_factory
        self.metrics = metrics or RetentionMetricsCollector()
        self.logger = logging.getLogger(__name__)

        self._register_routes()

        self.logger.info("Retention web application initialized")

    async def run_cleanup(self, dry_run: bool) -> CleanupReport:
        """Build a store and manager for one invocation and run it."""
        store = self.store_factory(self.settings)
        try:
            manager = create_retention_manager(
                self.settings.config_path,
                store,
                root_prefix=self.settings.root_prefix,
                logs_dir=self.settings.logs_dir,
                metrics=self.metrics,
            )
            return await manager.run_cleanup(dry_run=dry_run)
        finally:
            await store.close()

    def _register_routes(self):
        """Register all API routes."""

        @self.app.route('/health', methods=['GET'])
        def health_check():
            """Health check endpoint."""
            return jsonify({
                'status': 'healthy',
                'timestamp': datetime.now().isoformat(),
                'service': 'retentiond'
            })

        @self.app.route('/metrics', methods=['GET'])
        def metrics():
            """Prometheus scrape endpoint."""
            return Response(
                self.metrics.generate_latest(),
                mimetype=CONTENT_TYPE_LATEST,
                headers={'Cache-Control': 'no-cache, no-store, must-revalidate'}
            )

        @self.app.route('/api/cron/cleanup', methods=['GET'])
        @self.app.route('/api/cron/cleanup-chats', methods=['GET'], endpoint='cleanup_chats')
        def cleanup():
            """
            Run the retention cleanup.

            Headers:
            - Authorization: Bearer <CRON_SECRET>

            Query parameters:
            - dryRun: "true" to classify without deleting
            """
            try:
                cron_secret = self.settings.require_cron_secret()
            except RetentionConfigError as e:
                self.logger.error(str(e))
                return jsonify({'error': 'Server configuration error'}), 500

            if not is_authorized(request.headers.get('Authorization'), cron_secret):
                return jsonify({'error': 'Unauthorized'}), 401

            dry_run = request.args.get('dryRun') == 'true'

            try:
                report = asyncio.run(self.run_cleanup(dry_run))
            except RetentionConfigError as e:
                self.logger.error(f"Cleanup aborted by configuration error: {e}")
                return jsonify({'error': 'Server configuration error'}), 500
            except Exception as e:
                self.logger.exception(f"Error during cleanup: {e}")
                return jsonify({'error': 'Failed to run cleanup'}), 500

            return jsonify(report.to_dict())


def create_app(
    settings: Optional[RetentionSettings] = None,
    store_factory: Optional[StoreFactory] = None,
    metrics: Optional[RetentionMetricsCollector] = None,
) -> Flask:
    """Create the Flask application."""
    web_app = RetentionWebApp(settings or load_settings(), store_factory, metrics)
    return web_app.app
