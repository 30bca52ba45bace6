import os
import warnings

# Ignore deprecation noise from the ODM stack
warnings.filterwarnings("ignore", category=DeprecationWarning, module="beanie.*")

# Collaborators are stubbed unless a test injects its own
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("DEBUG", "false")

# Import database fixtures so they are available to all tests
from tests.fixtures.mongo_fixtures import *  # noqa: E402, F403
