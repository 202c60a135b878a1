import json
import logging
from decimal import Decimal, InvalidOperation

from django.contrib import messages
from django.contrib.auth import authenticate, get_user_model, login, logout
from django.contrib.auth.decorators import login_required
from django.db import DatabaseError
from django.db.models import Prefetch
from django.http import Http404, JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from . import accounts, catalog, orders, wishlist
from .cart import SessionCart
from .exceptions import AdminSetupError, EmptyCart, Unauthenticated
from .forms import (AddToCartForm, AdminSetupForm, CartLineForm, CheckoutForm,
                    LoginForm, ProfileForm, RegisterForm)
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

LAST_ORDER_KEY = 'last_order_id'


def _safe_next(request, default):
    next_url = request.POST.get('next') or request.GET.get('next')
    if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return next_url
    return default


def _price_param(request, name):
    try:
        return Decimal(request.GET[name])
    except (KeyError, InvalidOperation):
        return None


# -------------------------------
# Catalog Pages
# -------------------------------
def home(request):
    return render(request, 'shop/home.html', {
        'featured': catalog.featured_products(),
        'new_arrivals': catalog.new_arrivals(),
        'categories': catalog.list_categories(),
    })


def products_view(request):
    sizes = request.GET.getlist('size')
    sort = request.GET.get('sort', 'featured')
    products = catalog.filter_products(
        catalog.list_products(),
        category=request.GET.get('category'),
        special=request.GET.get('filter'),
        search=request.GET.get('q', '').strip(),
        min_price=_price_param(request, 'min_price'),
        max_price=_price_param(request, 'max_price'),
        sizes=sizes,
        sort=sort,
    )
    return render(request, 'shop/products.html', {
        'products': products,
        'categories': catalog.list_categories(),
        'selected_sizes': sizes,
        'sort': sort,
        'sort_options': catalog.SORT_OPTIONS,
    })


def product_detail(request, pk):
    product = catalog.get_product(pk)
    if product is None:
        raise Http404("Product not found")
    return render(request, 'shop/product_detail.html', {
        'product': product,
        'related': catalog.related_products(product),
        'in_wishlist': wishlist.is_in_wishlist(request.user, product.id),
        'form': AddToCartForm(),
    })


# -------------------------------
# CART SYSTEM
# -------------------------------
@require_POST
def add_to_cart(request, product_id):
    product = catalog.get_product(product_id)
    if product is None:
        raise Http404("Product not found")

    form = AddToCartForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Please choose a valid quantity.")
        return redirect('product_detail', pk=product.id)

    session_cart = SessionCart(request)
    cart = session_cart.load().add(
        product,
        form.cleaned_data['size'],
        form.cleaned_data['color'],
        form.cleaned_data['quantity'],
    )
    session_cart.save(cart)
    messages.success(request, f"{product.name} added to your cart.")
    return redirect(_safe_next(request, reverse('cart')))


@require_POST
def remove_from_cart(request):
    form = CartLineForm(request.POST)
    if form.is_valid():
        data = form.cleaned_data
        session_cart = SessionCart(request)
        session_cart.save(session_cart.load().remove(data['product_id'], data['size'], data['color']))
    return redirect('cart')


@require_POST
def update_cart_item(request):
    try:
        payload = json.loads(request.body)
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        return JsonResponse({'status': 'error', 'message': 'Invalid JSON'}, status=400)

    form = CartLineForm(payload)
    if not form.is_valid() or form.cleaned_data['quantity'] is None:
        return JsonResponse({'status': 'error', 'errors': form.errors}, status=400)

    data = form.cleaned_data
    session_cart = SessionCart(request)
    cart = session_cart.load().update_quantity(
        data['product_id'], data['size'], data['color'], data['quantity'])
    session_cart.save(cart)

    return JsonResponse({
        'status': 'success',
        'cart_count': cart.total_items,
        'total_price': str(cart.total_price),
    })


def cart_view(request):
    cart = SessionCart(request).load()
    return render(request, 'shop/cart.html', {
        'cart': cart,
        'quote': orders.quote(cart),
    })


# -------------------------------
# CHECKOUT
# -------------------------------
def checkout(request):
    session_cart = SessionCart(request)
    cart = session_cart.load()
    if not cart:
        messages.info(request, "Your cart is empty.")
        return redirect('products')

    if request.method == 'POST':
        form = CheckoutForm(request.POST)
        if form.is_valid():
            try:
                order = orders.place_order(
                    request.user,
                    cart,
                    form.shipping_info(),
                    form.cleaned_data['delivery_method'],
                    form.cleaned_data['notes'],
                )
            except Unauthenticated as e:
                messages.error(request, str(e))
                return redirect(f"{reverse('login')}?next={reverse('checkout')}")
            except EmptyCart as e:
                messages.info(request, str(e))
                return redirect('products')
            except DatabaseError:
                logger.exception("Order creation failed for user %s", request.user.pk)
                messages.error(request, "Error creating order. Please try again.")
            else:
                session_cart.clear()
                request.session[LAST_ORDER_KEY] = str(order.pk)
                return redirect('order_confirmation')
    else:
        initial = {}
        if request.user.is_authenticated:
            initial = {
                'first_name': request.user.first_name,
                'last_name': request.user.last_name,
                'email': request.user.email,
            }
        form = CheckoutForm(initial=initial)

    delivery_method = form['delivery_method'].value() or orders.STANDARD
    return render(request, 'shop/checkout.html', {
        'form': form,
        'cart': cart,
        'quote': orders.quote(cart, delivery_method),
    })


def order_confirmation(request):
    order_id = request.session.get(LAST_ORDER_KEY)
    order = None
    if order_id and request.user.is_authenticated:
        order = Order.objects.filter(pk=order_id, user=request.user).prefetch_related('items').first()
    return render(request, 'shop/order_confirmation.html', {'order': order})


# -------------------------------
# ORDERS
# -------------------------------
@login_required
def my_orders(request):
    user_orders = Order.objects.filter(user=request.user).prefetch_related(
        Prefetch('items', queryset=OrderItem.objects.order_by('id'))
    ).order_by('-created_at')
    return render(request, 'shop/my_orders.html', {'orders': user_orders})


@login_required
def order_detail(request, pk):
    order = get_object_or_404(Order.objects.prefetch_related('items'), pk=pk, user=request.user)
    return render(request, 'shop/order_detail.html', {'order': order})


# -------------------------------
# WISHLIST
# -------------------------------
@login_required
def wishlist_view(request):
    ids = wishlist.product_ids(request.user)
    products = list(catalog.products_by_id(ids).values())
    return render(request, 'shop/wishlist.html', {'products': products})


@login_required
@require_POST
def toggle_wishlist(request, product_id):
    product = catalog.get_product(product_id)
    if product is None:
        raise Http404("Product not found")
    added = wishlist.toggle(request.user, product.id)
    if added:
        messages.success(request, f"{product.name} added to your wishlist.")
    else:
        messages.info(request, f"{product.name} removed from your wishlist.")
    return redirect(_safe_next(request, reverse('product_detail', args=[product.id])))


# -------------------------------
# ACCOUNTS
# -------------------------------
def register(request):
    if request.user.is_authenticated:
        return redirect('home')

    form = RegisterForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        data = form.cleaned_data
        user = get_user_model().objects.create_user(
            username=data['email'],
            email=data['email'],
            password=data['password'],
            first_name=data['first_name'],
            last_name=data['last_name'],
        )
        login(request, user)
        logger.info("Registered user %s", user.pk)
        messages.success(request, "Welcome! Your account has been created.")
        return redirect(_safe_next(request, reverse('home')))
    return render(request, 'shop/register.html', {'form': form})


def login_view(request):
    if request.user.is_authenticated:
        return redirect('home')

    form = LoginForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        user = authenticate(
            request,
            username=form.cleaned_data['email'].lower(),
            password=form.cleaned_data['password'],
        )
        if user is None:
            messages.error(request, "Invalid email or password.")
        else:
            login(request, user)
            return redirect(_safe_next(request, reverse('home')))
    return render(request, 'shop/login.html', {'form': form})


@require_POST
def logout_view(request):
    logout(request)
    return redirect('home')


@login_required
def account(request):
    profile = getattr(request.user, 'profile', None)
    if request.method == 'POST':
        form = ProfileForm(request.POST)
        if form.is_valid():
            accounts.update_profile(request.user, form.cleaned_data['full_name'], form.cleaned_data['phone'])
            messages.success(request, "Profile updated successfully.")
            return redirect('account')
    else:
        form = ProfileForm(initial={
            'full_name': profile.full_name if profile else '',
            'phone': profile.phone if profile else '',
        })
    return render(request, 'shop/account.html', {'form': form, 'profile': profile})


@login_required
def admin_setup(request):
    form = AdminSetupForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        try:
            created = accounts.grant_admin(request.user, form.cleaned_data['setup_code'])
        except AdminSetupError as e:
            messages.error(request, str(e))
            return render(request, 'shop/admin_setup.html', {'form': form}, status=e.status_code)
        if created:
            messages.success(request, "Admin access granted.")
        else:
            messages.info(request, "You already have admin access.")
        return redirect('dashboard')
    return render(request, 'shop/admin_setup.html', {'form': form})
