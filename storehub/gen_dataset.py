import os
import django
import argparse
import random
import time
import uuid
from faker import Faker
from tqdm import tqdm

# Django setup
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "storehub.settings")
django.setup()

from django.utils.text import slugify

from core.catalog import create_category, create_product
from core.errors import StoreHubError
from core.models import Store, Product
from core.orders import create_admin_order, create_storefront_order
from core.principal import AuthContext, Role


fake = Faker()


def store_admin(store):
    """Operator principal bound to `store`, used to drive the catalog like a real admin would."""
    return AuthContext(id=f"seed-admin-{store.slug}", email=f"admin@{store.slug}.example", role=Role.ADMIN,
                       store_id=str(store.pk))


def generate_stores(num_stores):
    stores = []
    for i in range(num_stores):
        name = f"Store {i+1}"
        stores.append(Store(name=name, slug=slugify(name)))
    Store.objects.bulk_create(stores, ignore_conflicts=True)
    return list(Store.objects.order_by('slug'))


def generate_categories(store, num_categories):
    existing = list(store.categories.all())
    if existing:
        return existing

    ctx = store_admin(store)
    categories = []
    for i in range(num_categories):
        title = f"{fake.word().capitalize()} {i+1}"
        categories.append(create_category(ctx, {'title': title, 'slug': slugify(title)}))
    return categories


def generate_products(store, categories, num_products):
    ctx = store_admin(store)
    for i in tqdm(range(num_products), desc=f"Generating products for {store.name}"):
        title = fake.word().capitalize() + f" {fake.color_name()}"
        create_product(ctx, {
            'sku': f"{store.slug.upper()}-{i+1:06d}",
            'title': title,
            'slug': f"{slugify(title)}-{uuid.uuid4().hex[:8]}",
            'price_cents': random.randint(1000, 100000),
            'stock': random.randint(0, 500),
            'featured': random.random() < 0.1,
            'category_ids': [c.pk for c in random.sample(categories, k=min(2, len(categories)))],
        })


def generate_orders(store, num_orders, admin_share=0.1):
    """Place orders through the same engines the API uses; `admin_share` of them via the operator channel."""
    product_pks = list(Product.objects.filter(store=store).values_list("pk", flat=True))
    if not product_pks:
        print(f"Skipping orders for {store.name}: No products found.")
        return

    ctx = store_admin(store)
    start = time.time()
    created = 0
    items_created = 0
    failed = 0

    for _ in tqdm(range(num_orders), desc=f"Placing orders for {store.name}"):
        lines = [
            {'product_id': pk, 'quantity': random.randint(1, 5)}
            for pk in random.sample(product_pks, k=min(random.randint(1, 3), len(product_pks)))
        ]
        payload = {
            'customer_name': fake.name(),
            'phone': fake.msisdn(),
            'email': fake.email(),
            'city': fake.city(),
            'street_address': fake.street_address(),
            'delivery_cents': random.choice([0, 6000, 12000]),
            'tax_cents': 0,
            'items': lines,
        }
        try:
            if random.random() < admin_share:
                for line in lines:
                    line['unit_price_cents'] = random.randint(1000, 100000)
                create_admin_order(ctx, payload)
            else:
                create_storefront_order(payload)
            created += 1
            items_created += len(lines)
        except StoreHubError as e:
            failed += 1
            print(f"\nOrder rejected: {e.detail}")

    duration = time.time() - start
    throughput = created / duration if duration > 0 else 0

    print(f"\n--- Order Report for {store.name} ---")
    print(f"Time taken: {duration:.2f} seconds")
    print(f"Orders created: {created}")
    print(f"Order Items created: {items_created}")
    print(f"Orders rejected: {failed}")
    print(f"Throughput: {throughput:.2f} orders/sec")
    print("---------------------------------------------")


def main():
    parser = argparse.ArgumentParser(description="Generate a synthetic multi-store dataset for storehub")

    parser.add_argument("--stores", type=int, default=3, help="Number of stores")
    parser.add_argument("--categories", type=int, default=8, help="Categories per store")
    parser.add_argument("--products", type=int, default=200, help="Products per store")
    parser.add_argument("--orders", type=int, default=1000, help="Orders per store")
    parser.add_argument("--admin-share", type=float, default=0.1, help="Share of orders entered by an operator")

    args = parser.parse_args()

    print("Starting dataset generation with current settings:")
    print(f"- Stores: {args.stores}")
    print(f"- Products/Store: {args.products}")
    print(f"- Orders/Store: {args.orders}")

    total_start = time.time()

    for store in generate_stores(args.stores):
        categories = generate_categories(store, args.categories)
        generate_products(store, categories, args.products)
        generate_orders(store, args.orders, admin_share=args.admin_share)

    total_duration = time.time() - total_start
    print(f"\nDataset generation completed in {total_duration:.2f} seconds.")


if __name__ == "__main__":
    main()
