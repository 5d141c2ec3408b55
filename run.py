#!/usr/bin/env python3
"""Development runner"""
from rclbackup.cli import main

if __name__ == '__main__':
    main()
