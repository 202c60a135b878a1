import logging

from django import forms
from django.contrib.auth import get_user_model

from . import storage
from .catalog import encode_color, parse_color
from .models import Product
from .orders import DEFAULT_COUNTRY, DELIVERY_CHOICES, STANDARD, ShippingInfo
from .pricing import resolve_sale_price

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6
PASSWORD_ERROR = f"Password must be at least {PASSWORD_MIN_LENGTH} characters"


# -------------------------------
# Accounts
# -------------------------------
class LoginForm(forms.Form):
    email = forms.EmailField(error_messages={'invalid': 'Please enter a valid email address'})
    password = forms.CharField(
        widget=forms.PasswordInput,
        min_length=PASSWORD_MIN_LENGTH,
        error_messages={'min_length': PASSWORD_ERROR},
    )


class RegisterForm(forms.Form):
    first_name = forms.CharField(max_length=150)
    last_name = forms.CharField(max_length=150)
    email = forms.EmailField(error_messages={'invalid': 'Please enter a valid email address'})
    password = forms.CharField(
        widget=forms.PasswordInput,
        min_length=PASSWORD_MIN_LENGTH,
        error_messages={'min_length': PASSWORD_ERROR},
    )
    confirm_password = forms.CharField(widget=forms.PasswordInput)

    def clean_email(self):
        email = self.cleaned_data['email'].lower()
        if get_user_model().objects.filter(username=email).exists():
            raise forms.ValidationError('This email is already registered')
        return email

    def clean(self):
        cleaned = super().clean()
        if cleaned.get('password') and cleaned.get('password') != cleaned.get('confirm_password'):
            self.add_error('confirm_password', 'Passwords do not match')
        return cleaned


class ProfileForm(forms.Form):
    full_name = forms.CharField(max_length=200, required=False)
    phone = forms.CharField(max_length=50, required=False)


class AdminSetupForm(forms.Form):
    setup_code = forms.CharField(widget=forms.PasswordInput)


# -------------------------------
# Cart & checkout
# -------------------------------
class AddToCartForm(forms.Form):
    size = forms.CharField(max_length=50, required=False)
    color = forms.CharField(max_length=100, required=False)
    quantity = forms.IntegerField(min_value=1, initial=1)


class CartLineForm(forms.Form):
    product_id = forms.CharField(max_length=64)
    size = forms.CharField(max_length=50, required=False)
    color = forms.CharField(max_length=100, required=False)
    quantity = forms.IntegerField(required=False)


class CheckoutForm(forms.Form):
    first_name = forms.CharField(max_length=100)
    last_name = forms.CharField(max_length=100)
    email = forms.EmailField(error_messages={'invalid': 'Please enter a valid email address'})
    phone = forms.CharField(max_length=50, required=False)
    address = forms.CharField(max_length=255)
    city = forms.CharField(max_length=100)
    state = forms.CharField(max_length=100)
    zip_code = forms.CharField(max_length=20)
    country = forms.CharField(max_length=100, initial=DEFAULT_COUNTRY)
    delivery_method = forms.ChoiceField(choices=DELIVERY_CHOICES, initial=STANDARD)
    notes = forms.CharField(widget=forms.Textarea, required=False)

    def shipping_info(self):
        data = self.cleaned_data
        return ShippingInfo(
            name=f"{data['first_name']} {data['last_name']}".strip(),
            email=data['email'],
            phone=data.get('phone') or '',
            address=data['address'],
            city=data['city'],
            state=data['state'],
            zip_code=data['zip_code'],
            country=data.get('country') or DEFAULT_COUNTRY,
        )


# -------------------------------
# Back-office product form
# -------------------------------
class ColorListField(forms.CharField):
    """
    One color per line: ``Navy #1a2a4a`` or just ``Red``. Colors with a hex
    code are stored as JSON, bare names as plain strings.
    """
    widget = forms.Textarea

    def to_python(self, value):
        value = super().to_python(value)
        colors = []
        seen = set()
        for line in value.splitlines():
            line = line.strip()
            if not line:
                continue
            name, _, hex_code = line.rpartition(' ')
            if not name or not hex_code.startswith('#'):
                name, hex_code = line, None
            if name in seen:
                continue
            seen.add(name)
            colors.append(encode_color(name, hex_code))
        return colors


def colors_to_text(stored):
    lines = []
    for raw in stored or []:
        color = parse_color(raw)
        if isinstance(raw, str) and raw == color.name:
            lines.append(color.name)
        else:
            lines.append(f"{color.name} {color.hex}")
    return '\n'.join(lines)


class ProductForm(forms.ModelForm):
    colors = ColorListField(required=False)
    image_upload = forms.FileField(required=False, help_text='Uploaded and appended to the images list.')

    class Meta:
        model = Product
        fields = [
            'name', 'description', 'price', 'discount_percentage', 'category',
            'sizes', 'colors', 'images', 'stock', 'featured', 'is_new', 'is_visible',
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance.pk and not self.is_bound:
            self.initial['colors'] = colors_to_text(self.instance.colors)

    def clean_price(self):
        price = self.cleaned_data['price']
        if price is not None and price < 0:
            raise forms.ValidationError('Price cannot be negative')
        return price

    def clean_discount_percentage(self):
        pct = self.cleaned_data.get('discount_percentage')
        if pct is not None and pct != 0 and not (0 < pct < 100):
            raise forms.ValidationError('Discount must be between 0 and 100')
        return pct

    def clean_sizes(self):
        sizes = self.cleaned_data.get('sizes') or []
        if not isinstance(sizes, list):
            raise forms.ValidationError('Sizes must be a list')
        return [str(s) for s in sizes]

    def clean_images(self):
        images = self.cleaned_data.get('images') or []
        if not isinstance(images, list):
            raise forms.ValidationError('Images must be a list of URLs')
        return [str(url) for url in images]

    def clean(self):
        cleaned = super().clean()
        upload = cleaned.get('image_upload')
        if upload:
            try:
                url = storage.upload_product_image(upload)
            except Exception:
                logger.exception("Product image upload failed")
                self.add_error('image_upload', 'Failed to upload image')
            else:
                cleaned['images'] = list(cleaned.get('images') or []) + [url]
        return cleaned

    def save(self, commit=True):
        product = super().save(commit=False)
        product.sale_price = resolve_sale_price(product.price, product.discount_percentage)
        if commit:
            product.save()
        return product
