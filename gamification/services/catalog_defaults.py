"""
Default mission catalog seeded by `flask gamification seed`.

Five onboarding missions, each locked behind the previous one.
Mission lockers reference their prerequisite by key; the seeder resolves
keys to ids.
"""

DEFAULT_BADGES = [
    {
        'key': 'welcome',
        'name': 'Welcome!',
        'description': 'Congratulations on opening your store and starting your e-commerce journey!',
        'image': 'badges/welcome.png',
    },
    {
        'key': 'first-product',
        'name': 'First Product',
        'description': 'You added your first product to your store.',
        'image': 'badges/first-product.png',
    },
    {
        'key': 'first-sale',
        'name': 'First Sale',
        'description': 'You made your first sale!',
        'image': 'badges/first-sale.png',
    },
    {
        'key': 'store-setup',
        'name': 'Store Setup Genius',
        'description': 'You completed all the essential store setup tasks.',
        'image': 'badges/store-setup.png',
    },
    {
        'key': 'marketing-pro',
        'name': 'Marketing Pro',
        'description': 'You set up all the essential marketing tools for your store.',
        'image': 'badges/marketing-pro.png',
    },
]

DEFAULT_TASKS = [
    # Store setup
    {
        'key': 'update-store-logo',
        'name': 'Add Your Store Logo',
        'description': 'Upload your store logo to build your brand identity.',
        'points': 50,
        'event_name': 'store_logo_updated',
        'icon': 'image',
    },
    {
        'key': 'update-store-name',
        'name': 'Set Your Store Name',
        'description': 'Choose a name that represents your brand.',
        'points': 25,
        'event_name': 'store_name_updated',
        'icon': 'store',
    },
    {
        'key': 'customize-theme',
        'name': 'Customize Your Theme',
        'description': 'Make your store look unique by customizing the theme.',
        'points': 75,
        'event_name': 'theme_customized',
        'icon': 'palette',
    },
    # Products
    {
        'key': 'add-first-product',
        'name': 'Add Your First Product',
        'description': 'Create your first product listing.',
        'points': 100,
        'event_name': 'product_created',
        'event_payload_conditions': {'is_first_product': True},
        'icon': 'package',
    },
    {
        'key': 'add-product-images',
        'name': 'Add Product Images',
        'description': 'Upload high-quality images for your products.',
        'points': 50,
        'event_name': 'product_images_added',
        'icon': 'image',
    },
    {
        'key': 'create-product-category',
        'name': 'Create Product Category',
        'description': 'Organize your products with categories.',
        'points': 40,
        'event_name': 'category_created',
        'icon': 'folder',
    },
    # Payment and shipping
    {
        'key': 'setup-payment-method',
        'name': 'Set Up Payment Method',
        'description': "Configure how you'll receive payments from customers.",
        'points': 75,
        'event_name': 'payment_method_configured',
        'icon': 'credit-card',
    },
    {
        'key': 'setup-shipping',
        'name': 'Configure Shipping Options',
        'description': 'Set up shipping methods for your products.',
        'points': 60,
        'event_name': 'shipping_method_configured',
        'icon': 'truck',
    },
    # Marketing
    {
        'key': 'social-media-links',
        'name': 'Add Social Media Links',
        'description': 'Connect your store to your social media accounts.',
        'points': 35,
        'event_name': 'social_media_linked',
        'icon': 'share',
    },
    {
        'key': 'create-discount',
        'name': 'Create First Discount',
        'description': 'Create your first promotional discount code.',
        'points': 45,
        'event_name': 'discount_created',
        'icon': 'tag',
    },
    {
        'key': 'setup-seo',
        'name': 'Configure SEO Settings',
        'description': 'Optimize your store for search engines.',
        'points': 65,
        'event_name': 'seo_configured',
        'icon': 'search',
    },
    # First sale
    {
        'key': 'first-order',
        'name': 'Receive First Order',
        'description': 'Congratulations on your first customer order!',
        'points': 150,
        'event_name': 'order_created',
        'event_payload_conditions': {'is_first_order': True},
        'icon': 'shopping-cart',
    },
    {
        'key': 'first-order-shipped',
        'name': 'Ship First Order',
        'description': 'Ship your first customer order.',
        'points': 50,
        'event_name': 'order_shipped',
        'event_payload_conditions': {'is_first_order': True},
        'icon': 'check-circle',
    },
]

DEFAULT_MISSIONS = [
    {
        'key': 'store-setup',
        'name': 'Store Setup',
        'description': 'Get your store set up with basic information and branding.',
        'image': 'missions/store-setup.png',
        'total_points': 150,
        'sort_order': 1,
        'tasks': ['update-store-logo', 'update-store-name', 'customize-theme'],
        'requires': None,
        'rewards': [
            {'reward_type': 'points', 'reward_value': '150'},
            {'reward_type': 'badge', 'reward_value': 'store-setup'},
        ],
    },
    {
        'key': 'product-catalog',
        'name': 'Product Catalog',
        'description': 'Set up your product catalog to start selling.',
        'image': 'missions/product-catalog.png',
        'total_points': 190,
        'sort_order': 2,
        'tasks': ['add-first-product', 'add-product-images', 'create-product-category'],
        'requires': 'store-setup',
        'rewards': [
            {'reward_type': 'points', 'reward_value': '190'},
            {'reward_type': 'badge', 'reward_value': 'first-product'},
        ],
    },
    {
        'key': 'payment-shipping',
        'name': 'Payment & Shipping',
        'description': "Configure how you'll receive payments and ship products.",
        'image': 'missions/payment-shipping.png',
        'total_points': 135,
        'sort_order': 3,
        'tasks': ['setup-payment-method', 'setup-shipping'],
        'requires': 'product-catalog',
        'rewards': [
            {'reward_type': 'points', 'reward_value': '135'},
            {
                'reward_type': 'feature_unlock',
                'reward_value': 'advanced_analytics',
                'reward_meta': {
                    'feature_name': 'Advanced Analytics',
                    'feature_description': 'Access advanced analytics to track your store performance',
                },
            },
        ],
    },
    {
        'key': 'marketing',
        'name': 'Marketing',
        'description': 'Set up marketing tools to drive traffic to your store.',
        'image': 'missions/marketing.png',
        'total_points': 145,
        'sort_order': 4,
        'tasks': ['social-media-links', 'create-discount', 'setup-seo'],
        'requires': 'payment-shipping',
        'rewards': [
            {'reward_type': 'points', 'reward_value': '145'},
            {'reward_type': 'badge', 'reward_value': 'marketing-pro'},
        ],
    },
    {
        'key': 'first-sale',
        'name': 'First Sale',
        'description': 'Get your first sale and learn the order fulfillment process.',
        'image': 'missions/first-sale.png',
        'total_points': 200,
        'sort_order': 5,
        'tasks': ['first-order', 'first-order-shipped'],
        'requires': 'marketing',
        'rewards': [
            {'reward_type': 'points', 'reward_value': '200'},
            {'reward_type': 'badge', 'reward_value': 'first-sale'},
            {
                'reward_type': 'coupon',
                'reward_value': 'FIRSTSALE50',
                'reward_meta': {
                    'coupon_name': '50% Off Premium Plan',
                    'coupon_description': 'Get 50% off your first month of the Premium plan',
                    'expiry_days': 30,
                },
            },
        ],
    },
]
