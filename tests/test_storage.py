import re
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile

from shop import storage

URL = 'https://res.cloudinary.com/demo/image/upload/v1700000000/product-images/products/1700000000000-abcdefghijk.png'


def test_object_path():
    assert re.match(r'^products/\d+-[a-z0-9]{11}\.png$', storage.object_path('Photo.PNG'))
    assert storage.object_path('no-extension').endswith('.jpg')


def test_public_id_from_url():
    assert storage.public_id_from_url(URL) == 'product-images/products/1700000000000-abcdefghijk'
    assert storage.public_id_from_url('https://img.example/other.jpg') is None
    assert storage.public_id_from_url('') is None


def test_upload_returns_public_url():
    upload = SimpleUploadedFile('shirt.png', b'fake-image-bytes', content_type='image/png')

    with mock.patch('cloudinary.uploader.upload', return_value={'secure_url': URL}) as uploader:
        assert storage.upload_product_image(upload) == URL

    kwargs = uploader.call_args.kwargs
    assert kwargs['folder'] == 'product-images'
    assert kwargs['public_id'].startswith('products/')
    assert not kwargs['public_id'].endswith('.png')


def test_delete_image():
    with mock.patch('cloudinary.uploader.destroy', return_value={'result': 'ok'}) as destroy:
        assert storage.delete_product_image(URL)
    destroy.assert_called_once_with('product-images/products/1700000000000-abcdefghijk')


def test_delete_image_is_best_effort():
    with mock.patch('cloudinary.uploader.destroy', side_effect=RuntimeError('network')):
        assert storage.delete_product_image(URL) is False

    with mock.patch('cloudinary.uploader.destroy') as destroy:
        assert storage.delete_product_image('https://img.example/other.jpg') is False
    destroy.assert_not_called()
