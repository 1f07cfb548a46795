import os
import tempfile
from pathlib import Path

# Keep settings.ini and log files of the test run out of the working tree
_test_home = Path(tempfile.mkdtemp(prefix='textile_planning_tests_'))
_settings = _test_home / 'settings.ini'
_settings.write_text(
    "[DATABASE]\n"
    "url = sqlite://\n"
    "\n"
    "[LOGGING]\n"
    f"directory = {_test_home / 'logs'}\n"
    "console_output = False\n"
)
os.environ.setdefault('TEXTILE_PLANNING_CONFIG_DIR', str(_test_home))
