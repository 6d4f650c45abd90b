import os
import sys

import matplotlib

matplotlib.use('Agg')

# Add repository root to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
