# jan_lookup/pipeline/__init__.py

# This file makes the pipeline entry points directly available from the 'pipeline' package.
from .prompt_builder import build_prompt
from .injection import InjectionController
from .monitor import CompletionMonitor
from .extractor import extract_records
from .session import HarnessSession, SessionPhase
from .resolver import ProductResolver
