"""Общий Peewee-Proxy для всех моделей.

Реальная база подключается в :func:`database.init.init_from_env`.
"""

from peewee import Proxy

db = Proxy()
