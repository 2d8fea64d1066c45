# Data layer for the reach planner

from .audience import AudienceDataParser, AudienceTable, format_demo_label
from .manager import DataManager, PlanImportError

__all__ = ['AudienceDataParser', 'AudienceTable', 'format_demo_label', 'DataManager', 'PlanImportError']
