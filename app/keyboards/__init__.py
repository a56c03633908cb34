"""Клавиатуры бота"""
