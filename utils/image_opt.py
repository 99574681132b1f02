import uuid
from io import BytesIO

from django.core.files.uploadedfile import InMemoryUploadedFile
from PIL import Image, UnidentifiedImageError
from rest_framework.exceptions import ValidationError

ALLOWED_FORMATS = ('JPEG', 'PNG', 'GIF', 'WEBP')


def detect_image_format(file):
    """
    Returns the Pillow format name ('JPEG', 'PNG', ...) of an uploaded file,
    or None when it is not an image. The file position is restored.
    """
    position = file.tell() if hasattr(file, 'tell') else 0
    try:
        with Image.open(file) as img:
            return img.format
    except (UnidentifiedImageError, OSError):
        return None
    finally:
        file.seek(position)


def optimize_image(image, image_format):
    """
    Optimizes an image file for uploads:
      - Creates a thumbnail (max 800x800) using LANCZOS resampling.
      - Re-encodes JPEG/WEBP at quality 80, PNG with optimize; GIFs are
        flattened to their first frame as PNG.

    Raises:
        ValidationError: When the image cannot be opened or processed.
    """
    try:
        img = Image.open(image)
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError(f"Invalid image file: {str(e)}")

    img.thumbnail((800, 800), Image.Resampling.LANCZOS)
    buffer = BytesIO()

    if image_format == 'JPEG':
        img.convert("RGB").save(buffer, format='JPEG', quality=80, optimize=True)
        extension = 'jpeg'
    elif image_format == 'WEBP':
        img.save(buffer, format='WEBP', quality=80)
        extension = 'webp'
    else:
        img.save(buffer, format='PNG', optimize=True)
        extension = 'png'

    buffer.seek(0)
    return InMemoryUploadedFile(
        file=buffer,
        field_name='image',
        name=f"{uuid.uuid4().hex}.{extension}",
        content_type=f'image/{extension}',
        size=buffer.getbuffer().nbytes,
        charset=None
    )


def process_uploaded_file(file, max_size_mb=10):
    """
    Validates and optimizes an uploaded review image.
      - Checks file size is below `max_size_mb`.
      - Verifies that the file is a jpeg, png, gif or webp image.
      - Optimizes the image by calling `optimize_image`.

    Raises:
        ValidationError: If the file is too large, not an allowed type, or
        cannot be processed.
    """
    if file.size > max_size_mb * 1024 * 1024:
        raise ValidationError(f"Image size should not exceed {max_size_mb} MB.")

    image_format = detect_image_format(file)
    if image_format not in ALLOWED_FORMATS:
        raise ValidationError("Unsupported image type. Please use jpeg, png, gif or webp.")

    return optimize_image(file, image_format)
