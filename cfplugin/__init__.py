# -*- coding: utf-8 -*-
"""
cf-plugin - command line plugin host for the Cloud Foundry CLI
"""

from cfplugin.config import config

__version__ = "1.0.0"


def prepare_cli_paths() -> None:
	if config.plugin_user_dir and not config.plugin_user_dir.exists():
		config.plugin_user_dir.mkdir(parents=True)
