"""
Flask web application for the site mirror.

Provides a small JSON API for starting mirror jobs and polling their status.
"""

import asyncio
import threading
import time
from dataclasses import asdict
from typing import Dict

from flask import Flask, request, jsonify

from ..crawler import SiteMirror
from ..utils.constants import DEFAULT_CONCURRENCY, DEFAULT_MAX_DEPTH, DEFAULT_OUTPUT_ROOT
from ..utils.errors import InvalidUrlError
from ..utils.log import get_logger


logger = get_logger("web")

MAX_DEPTH_LIMIT = 20
MAX_CONCURRENCY_LIMIT = 10


def create_app():
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Store for mirror jobs
    app.mirror_jobs: Dict[str, dict] = {}
    app.job_counter = 0
    app.job_lock = threading.Lock()

    @app.route('/api/mirror', methods=['POST'])
    def start_mirror():
        """Start a new mirror job."""
        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'No JSON data provided'}), 400

        url = str(data.get('url', '')).strip()
        if not url:
            return jsonify({'error': 'URL is required'}), 400
        if not url.startswith(('http://', 'https://')):
            url = 'https://' + url

        try:
            max_depth = int(data.get('maxDepth', DEFAULT_MAX_DEPTH))
            concurrency = int(data.get('concurrency', DEFAULT_CONCURRENCY))
        except (TypeError, ValueError) as e:
            return jsonify({'error': f'Invalid parameter value: {e}'}), 400
        output_root = data.get('outputDir', DEFAULT_OUTPUT_ROOT)

        if max_depth < 1 or max_depth > MAX_DEPTH_LIMIT:
            return jsonify({'error': f'Max depth must be between 1 and {MAX_DEPTH_LIMIT}'}), 400
        if concurrency < 1 or concurrency > MAX_CONCURRENCY_LIMIT:
            return jsonify({
                'error': f'Concurrency must be between 1 and {MAX_CONCURRENCY_LIMIT}'
            }), 400

        try:
            mirror = SiteMirror(
                url=url,
                output_root=output_root,
                max_depth=max_depth,
                concurrency=concurrency,
                open_viewer=False,
            )
        except InvalidUrlError as e:
            return jsonify({'error': str(e)}), 400

        with app.job_lock:
            app.job_counter += 1
            job_id = f"job_{app.job_counter}_{int(time.time())}"

        app.mirror_jobs[job_id] = {
            'id': job_id,
            'url': url,
            'status': 'starting',
            'output_dir': mirror.scope.output_dir,
            'started_at': time.time(),
            'completed_at': None,
            'result': None,
            'message': 'Initializing...'
        }

        thread = threading.Thread(
            target=_run_mirror_job,
            args=(app, job_id, mirror),
            daemon=True
        )
        thread.start()

        return jsonify({
            'jobId': job_id,
            'message': 'Mirror job started',
            'status': 'starting'
        })

    @app.route('/api/status/<job_id>')
    def get_status(job_id):
        """Get the status of a mirror job."""
        job = app.mirror_jobs.get(job_id)
        if not job:
            return jsonify({'error': 'Job not found'}), 404
        return jsonify(job)

    @app.route('/api/jobs')
    def list_jobs():
        """List all mirror jobs, newest first."""
        jobs = list(app.mirror_jobs.values())
        jobs.sort(key=lambda x: x.get('started_at', 0), reverse=True)
        return jsonify({'jobs': jobs})

    return app


def _run_mirror_job(app, job_id: str, mirror: SiteMirror) -> None:
    """Run a mirror job in a background thread."""
    job = app.mirror_jobs[job_id]
    job['status'] = 'running'
    job['message'] = 'Mirroring...'

    try:
        result = asyncio.run(mirror.mirror())
    except Exception as e:
        logger.exception(f"Mirror job {job_id} failed")
        job['status'] = 'failed'
        job['message'] = f'Error: {e}'
    else:
        job['status'] = 'completed'
        job['result'] = asdict(result)
        job['message'] = (
            f'Completed: {result.pages_saved} pages, '
            f'{result.assets_downloaded} assets'
        )
    finally:
        job['completed_at'] = time.time()


def run_app(host: str = '127.0.0.1', port: int = 5000, debug: bool = False):
    """Run the Flask web application."""
    app = create_app()
    app.run(host=host, port=port, debug=debug)
