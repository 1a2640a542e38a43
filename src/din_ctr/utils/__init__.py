from din_ctr.utils.pylogger import RankedLogger
from din_ctr.utils.rich_utils import print_config_tree
from din_ctr.utils.utils import extras, get_metric_value, task_wrapper

__all__ = [
    "RankedLogger",
    "extras",
    "get_metric_value",
    "print_config_tree",
    "task_wrapper",
]
