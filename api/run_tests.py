"""
Django Test Runner
Run this script to execute the test suite: python run_tests.py [app_label ...]
"""
import os
import sys

# Set the project path
project_path = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_path)

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings')


if __name__ == '__main__':
    from django.core.management import execute_from_command_line
    execute_from_command_line(['manage.py', 'test', *sys.argv[1:]])
