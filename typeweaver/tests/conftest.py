"""Unit tests configuration file."""

import json
import os

import pytest

from typeweaver.generator.functions import default_functions
from typeweaver.generator.processor import TemplateProcessor
from typeweaver.generator.templates import TemplateLoader
from typeweaver.generator.types import load_model

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
MODEL_FILE = os.path.join(FILE_DIR, "generator", "employees.json")


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def model_file():
    return MODEL_FILE


@pytest.fixture
def model():
    with open(MODEL_FILE, encoding="utf-8") as f:
        return load_model(json.load(f))


@pytest.fixture
def processor():
    return TemplateProcessor(TemplateLoader(), default_functions())
