# Ensure tests import the package from this checkout first, even when it is
# not installed, so `import badge_proxy.*` resolves to the working tree.
import os
import sys

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)
