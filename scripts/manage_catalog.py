#!/usr/bin/env python3
"""
Управление каталогом магазина из командной строки

Примеры:
    python scripts/manage_catalog.py add-product "VPN 30 дней" 100 --period-days 30
    python scripts/manage_catalog.py edit-product 1 --price 150
    python scripts/manage_catalog.py add-items 1 keys.txt
    python scripts/manage_catalog.py list --all
    python scripts/manage_catalog.py list-items 1
    python scripts/manage_catalog.py show-item 7
    python scripts/manage_catalog.py delete-item 7
    python scripts/manage_catalog.py delete-product 1
"""

import argparse
import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

from app.core.constants import Currency, ItemStatus
from app.core.exceptions import ShopError
from app.database import ORMDatabase
from app.repositories import ItemRepository, ProductRepository
from app.services import InventoryService
from app.utils import format_datetime, format_price


logger = logging.getLogger(__name__)

SECONDS_IN_DAY = 24 * 60 * 60


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Управление каталогом магазина")
    parser.add_argument("--database-url", help="URL БД (по умолчанию из .env)")
    parser.add_argument("--init-db", action="store_true", help="Создать таблицы перед командой")
    commands = parser.add_subparsers(dest="command", required=True)

    add_product = commands.add_parser("add-product", help="Добавить товар")
    add_product.add_argument("name", help="Название")
    add_product.add_argument("price", type=Decimal, help="Цена")
    add_product.add_argument("--description", default="", help="Описание")
    add_product.add_argument(
        "--currency", default=Currency.XTR, choices=Currency.all_currencies(), help="Валюта"
    )
    add_product.add_argument("--period-days", type=int, default=30, help="Срок подписки (дни)")

    edit_product = commands.add_parser("edit-product", help="Изменить товар")
    edit_product.add_argument("product_id", type=int, help="ID товара")
    edit_product.add_argument("--name")
    edit_product.add_argument("--description")
    edit_product.add_argument("--price", type=Decimal)
    edit_product.add_argument("--currency", choices=Currency.all_currencies())
    edit_product.add_argument("--period-days", type=int)

    add_items = commands.add_parser("add-items", help="Пополнить склад из файла")
    add_items.add_argument("product_id", type=int, help="ID товара")
    add_items.add_argument("file", type=Path, help="Файл с содержимым, одна единица на строку")

    delete_product = commands.add_parser("delete-product", help="Снять товар с витрины")
    delete_product.add_argument("product_id", type=int, help="ID товара")

    list_products = commands.add_parser("list", help="Показать витрину")
    list_products.add_argument(
        "--all", action="store_true", help="Включая закончившиеся и снятые с витрины"
    )

    list_items = commands.add_parser("list-items", help="Единицы товара со статусами")
    list_items.add_argument("product_id", type=int, help="ID товара")

    show_item = commands.add_parser("show-item", help="Показать единицу товара")
    show_item.add_argument("item_id", type=int, help="ID единицы")

    delete_item = commands.add_parser("delete-item", help="Удалить единицу в продаже")
    delete_item.add_argument("item_id", type=int, help="ID единицы")
    return parser


def product_changes(args: argparse.Namespace) -> dict:
    """Поля товара, переданные в edit-product"""
    changes = {
        "name": args.name,
        "description": args.description,
        "price": args.price,
        "currency": args.currency,
    }
    if args.period_days is not None:
        changes["subscription_period"] = args.period_days * SECONDS_IN_DAY
    return {field: value for field, value in changes.items() if value is not None}


async def run(args: argparse.Namespace) -> None:
    db = ORMDatabase(args.database_url)
    await db.connect()
    try:
        if args.init_db:
            await db.init_db()

        inventory = InventoryService(ItemRepository(db), ProductRepository(db))

        if args.command == "add-product":
            product = await inventory.create_product(
                name=args.name,
                description=args.description,
                price=args.price,
                currency=args.currency,
                subscription_period=args.period_days * SECONDS_IN_DAY,
            )
            print(f"✅ Товар #{product.id} добавлен: {product.name}")

        elif args.command == "edit-product":
            changes = product_changes(args)
            if not changes:
                print("Нечего менять")
                return
            product = await inventory.update_product(args.product_id, **changes)
            print(f"✅ Товар #{product.id} изменен: {', '.join(changes)}")

        elif args.command == "add-items":
            payloads = [
                line.strip()
                for line in args.file.read_text(encoding="utf-8").splitlines()
                if line.strip()
            ]
            items = await inventory.add_items(args.product_id, payloads)
            print(f"✅ Добавлено единиц: {len(items)}")

        elif args.command == "delete-product":
            await inventory.delete_product(args.product_id)
            print(f"✅ Товар #{args.product_id} снят с витрины")

        elif args.command == "list":
            if args.all:
                products = await inventory.list_all_products()
            else:
                products = await inventory.list_products(limit=100)
            if not products:
                print("Витрина пуста")
            for product, available in products:
                hidden = "  [снят]" if product.deleted_at else ""
                print(
                    f"#{product.id:<5} {product.name:<32} "
                    f"{format_price(product.price, product.currency):>12}  "
                    f"в наличии: {available}{hidden}"
                )

        elif args.command == "list-items":
            await inventory.get_product(args.product_id, include_deleted=True)
            for item in await inventory.list_items(args.product_id):
                print(f"#{item.id:<6} {ItemStatus.get_status_name(item.status):<24} {item.payload}")

        elif args.command == "show-item":
            item = await inventory.get_item(args.item_id)
            print(f"Единица #{item.id} товара #{item.product_id}")
            print(f"Статус: {ItemStatus.get_status_name(item.status)}")
            print(f"Изменена: {format_datetime(item.updated_at)} UTC")
            print(f"Содержимое: {item.payload}")

        elif args.command == "delete-item":
            await inventory.delete_item(args.item_id)
            print(f"✅ Единица #{args.item_id} удалена")
    finally:
        await db.disconnect()


def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s - %(message)s")
    args = build_parser().parse_args()
    try:
        asyncio.run(run(args))
    except ShopError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
