from django.urls import path
from . import dashboard, views

urlpatterns = [
    path('', views.home, name='home'),  # homepage
    path('products/', views.products_view, name='products'),
    path('product/<uuid:pk>/', views.product_detail, name='product_detail'),
    path('cart/', views.cart_view, name='cart'),
    path('cart/add/<uuid:product_id>/', views.add_to_cart, name='add_to_cart'),
    path('cart/remove/', views.remove_from_cart, name='remove_from_cart'),
    path('update-cart-item/', views.update_cart_item, name='update_cart_item'),
    path('checkout/', views.checkout, name='checkout'),
    path('order-confirmation/', views.order_confirmation, name='order_confirmation'),
    path('orders/', views.my_orders, name='my_orders'),
    path('orders/<uuid:pk>/', views.order_detail, name='order_detail'),
    path('wishlist/', views.wishlist_view, name='wishlist'),
    path('wishlist/toggle/<uuid:product_id>/', views.toggle_wishlist, name='toggle_wishlist'),
    path('account/', views.account, name='account'),
    path('auth/login/', views.login_view, name='login'),
    path('auth/register/', views.register, name='register'),
    path('auth/logout/', views.logout_view, name='logout'),
    path('admin-setup/', views.admin_setup, name='admin_setup'),

    # Back-office
    path('manage/', dashboard.dashboard, name='dashboard'),
    path('manage/revenue/', dashboard.revenue_chart, name='revenue_chart'),
    path('manage/orders/', dashboard.orders_list, name='admin_orders'),
    path('manage/orders/<uuid:pk>/status/', dashboard.update_order_status, name='admin_order_status'),
    path('manage/customers/', dashboard.customers, name='admin_customers'),
    path('manage/products/<uuid:pk>/visibility/', dashboard.toggle_product_visibility, name='admin_product_visibility'),
]
