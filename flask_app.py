import queue
import socket
import logging
from typing import Callable, List, Optional

from flask import Flask, request, render_template_string, jsonify

from config import Settings, APP_NAME
from data_models import AppState, QueueItem
from utils import is_http_url, is_valid_youtube_url, get_video_title

logger = logging.getLogger(__name__)

HTML_TEMPLATE = """
<!doctype html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ app_name }} queue</title>
    <style>
        body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; max-width: 900px; margin: 2rem auto; padding: 0 1rem; background: #f4f4f9; color: #333; }
        .container { background: white; padding: 2rem; border-radius: 12px; box-shadow: 0 4px 6px rgba(0,0,0,0.1); }
        h1 { margin-top: 0; color: #2c3e50; text-align: center; }
        input[type=text] { width: 100%; padding: 0.6rem; box-sizing: border-box; margin-bottom: 0.5rem; }
        button { padding: 0.6rem 1.2rem; background: #3498db; color: white; border: none; border-radius: 6px; cursor: pointer; }
        table { width: 100%; border-collapse: collapse; margin-top: 1.5rem; }
        th, td { text-align: left; padding: 0.5rem; border-bottom: 1px solid #eee; }
        #status { margin-top: 0.5rem; }
    </style>
</head>
<body>
<div class="container">
    <h1>{{ app_name }} queue</h1>
    <form id="add-form">
        <input type="text" name="url" placeholder="Paste a video URL..." required>
        <input type="text" name="title" placeholder="Title (optional)">
        <button type="submit">Add to queue</button>
    </form>
    <div id="status"></div>
    <table>
        <thead><tr><th>#</th><th>Title</th></tr></thead>
        <tbody id="queue-body">
        {% for item in playlist %}
            <tr><td>{{ loop.index }}</td><td><a href="{{ item.url }}">{{ item.title }}</a></td></tr>
        {% else %}
            <tr><td colspan="2">The queue is empty.</td></tr>
        {% endfor %}
        </tbody>
    </table>
</div>
<script>
document.getElementById('add-form').addEventListener('submit', async (e) => {
    e.preventDefault();
    const resp = await fetch('/api/add_to_queue', {method: 'POST', body: new FormData(e.target)});
    const data = await resp.json();
    document.getElementById('status').textContent = data.message;
    if (resp.ok) { e.target.reset(); }
});
</script>
</body>
</html>
"""


class RemoteInbox:
    """Submissions from the web thread, drained by the UI thread."""

    def __init__(self):
        self._items: "queue.Queue[QueueItem]" = queue.Queue()

    def put(self, item: QueueItem) -> None:
        self._items.put(item)

    def drain(self) -> List[QueueItem]:
        drained = []
        while True:
            try:
                drained.append(self._items.get_nowait())
            except queue.Empty:
                return drained


def normalize_submitted_url(url: str) -> Optional[str]:
    url = url.strip()
    if is_http_url(url):
        return url
    if is_valid_youtube_url(url):
        return f"https://{url}"
    return None


def create_app(
    state: AppState,
    inbox: RemoteInbox,
    title_lookup: Callable[[str], Optional[str]] = get_video_title,
) -> Flask:
    flask_app = Flask(__name__)

    @flask_app.route("/", methods=["GET"])
    def index():
        return render_template_string(HTML_TEMPLATE, playlist=state.queue_snapshot(), app_name=APP_NAME)

    @flask_app.route("/api/queue_data")
    def queue_data_api():
        return jsonify({"queue": [item.to_dict() for item in state.queue_snapshot()]})

    @flask_app.route("/api/add_to_queue", methods=["POST"])
    def add_to_queue_api():
        raw_url = request.form.get("url", "")
        if not raw_url.strip():
            return jsonify({"status": "error", "message": "URL is missing."}), 400

        url = normalize_submitted_url(raw_url)
        if url is None:
            return jsonify({"status": "error", "message": "Invalid video URL."}), 400

        title = request.form.get("title", "").strip() or title_lookup(url) or url
        inbox.put(QueueItem(title=title, url=url))
        logger.info(f"Remote submission from {request.remote_addr}: {title}")
        return jsonify({"status": "success", "message": f"Successfully added '{title}'!"})

    return flask_app


def _local_ip() -> str:
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        s.connect(("8.8.8.8", 80))
        return s.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        s.close()


def run_flask(flask_app: Flask, settings: Settings) -> None:
    zeroconf = None
    info = None
    try:
        if settings.advertise_mdns:
            from zeroconf import ServiceInfo, Zeroconf

            ip_address = _local_ip()
            info = ServiceInfo(
                "_http._tcp.local.",
                f"{APP_NAME} queue._http._tcp.local.",
                addresses=[socket.inet_aton(ip_address)],
                port=settings.server_port,
                properties={"path": "/"},
                server=f"{APP_NAME}.local.",
            )
            zeroconf = Zeroconf()
            zeroconf.register_service(info)
            logger.info(f"mDNS service registered: http://{APP_NAME}.local:{settings.server_port} (or http://{ip_address}:{settings.server_port})")

        flask_app.run(host=settings.server_host, port=settings.server_port, debug=False, use_reloader=False)
    finally:
        if zeroconf:
            logger.info("Unregistering mDNS service...")
            zeroconf.unregister_service(info)
            zeroconf.close()
