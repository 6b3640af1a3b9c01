"""CLI utility functions"""

from .output import (
    format_deploy_result,
    format_recovery_plan,
    format_interrupted_list,
    format_backup_list,
    format_restore_result,
    format_lock_list,
    print_error,
    print_warning,
    print_info,
    print_success,
)

__all__ = [
    'format_deploy_result',
    'format_recovery_plan',
    'format_interrupted_list',
    'format_backup_list',
    'format_restore_result',
    'format_lock_list',
    'print_error',
    'print_warning',
    'print_info',
    'print_success',
]
