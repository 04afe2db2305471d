def product_to_dict(product):
    return {
        'id': product.id,
        'name': product.name,
        'type': product.product_type,
        'sku': product.sku,
        'price': product.price,
        'regularPrice': product.regular_price,
        'description': product.description,
        'shortDescription': product.short_description,
        'stockStatus': product.stock_status,
        'stockQuantity': product.stock_quantity,
        'manageStock': product.manage_stock,
        'images': product.images,
        'categories': product.categories,
        'attributes': product.attributes,
        'variations': product.variations,
        'tierPricing': product.tier_pricing,
        'sourceModifiedAt': product.source_modified_at,
        'syncedAt': product.synced_at,
        'isActive': product.is_active,
    }


def customer_to_dict(customer):
    return {
        'id': customer.id,
        'email': customer.email,
        'firstName': customer.first_name,
        'lastName': customer.last_name,
        'username': customer.username,
        'role': customer.role,
        'billing': customer.billing,
        'shipping': customer.shipping,
        'sourceModifiedAt': customer.source_modified_at,
        'syncedAt': customer.synced_at,
        'isActive': customer.is_active,
    }
