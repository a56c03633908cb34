"""Служебные скрипты"""
