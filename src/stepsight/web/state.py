import threading
import time


class SharedState:
    """
    Singleton class to share state between the pipeline runner
    and the FastAPI web server.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SharedState, cls).__new__(cls)
                    cls._instance.reset()
        return cls._instance

    def reset(self):
        """Forget the attached pipeline and sinks."""
        self.pipeline = None
        self.latest_sink = None
        self.sinks = []
        self.config_service = None
        self.settings_lock = threading.Lock()
        self.start_time = time.time()

    def attach(self, pipeline, latest_sink=None, sinks=None, config_service=None):
        """
        Attach the running pipeline, the sinks the settings API may
        reconfigure and the config service that persists settings.
        """
        self.pipeline = pipeline
        self.latest_sink = latest_sink
        self.sinks = list(sinks or [])
        self.config_service = config_service
        self.start_time = time.time()

    def latest_alert(self):
        """Return (alert, received_at) from the latest-alert sink, else the pipeline."""
        if self.latest_sink is not None:
            return self.latest_sink.latest()
        if self.pipeline is not None and self.pipeline.latest_alert is not None:
            return self.pipeline.latest_alert, None
        return None, None


# Global instance
state = SharedState()
