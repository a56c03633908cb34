"""Магазин цифровых товаров в Telegram"""
