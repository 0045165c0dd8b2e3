"""
birb Test Suite
Unit and integration tests for the birb package manager
"""

import sys
import os
import unittest
import logging
import tempfile

# Add birb to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Configure logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(os.path.join(tempfile.gettempdir(), 'birb_tests.log'))
    ]
)


def run_all_tests():
    """Run all birb tests"""
    loader = unittest.TestLoader()
    suite = loader.discover(os.path.dirname(__file__), pattern='test_*.py',
                            top_level_dir=os.path.join(os.path.dirname(__file__), '..'))
    runner = unittest.TextTestRunner(verbosity=2)
    return runner.run(suite)


if __name__ == '__main__':
    run_all_tests()
