"""Environment configuration for the grading backend"""
import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / '.env')

# Semantic (LLM) validation
OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
SEMANTIC_VALIDATOR_MODEL = os.environ.get('SEMANTIC_VALIDATOR_MODEL', 'gpt-4o-mini')
SEMANTIC_VALIDATION_TIMEOUT = float(os.environ.get('SEMANTIC_VALIDATION_TIMEOUT', 10.0))  # seconds

# Equivalence checking
EQUIVALENCE_TRIALS = int(os.environ.get('EQUIVALENCE_TRIALS', 5))

# Server
CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
PORT = int(os.environ.get('PORT', 8080))
