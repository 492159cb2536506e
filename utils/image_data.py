import numpy as np
import cv2


class ImageData:
    """
    Multi-channel float64 image buffer.

    Pixels are stored channel-first as (C, H, W). Pixel indices are
    row-major within a channel, so index = row * width + col.
    """

    def __init__(self, image):
        img = np.asarray(image, dtype=np.float64)
        if img.ndim == 2:
            data = img[np.newaxis, :, :]
        elif img.ndim == 3:
            data = np.moveaxis(img, 2, 0)
        else:
            raise ValueError(f"Expected a 2-D or 3-D image, got shape {img.shape}")
        self._data = np.ascontiguousarray(data)

    @classmethod
    def from_buffer(cls, buffer, image_size, num_channels=1):
        """
        Builds an image from a flat pixel buffer of length
        num_channels * height * width. The buffer is copied.
        """
        h, w = image_size
        flat = np.asarray(buffer, dtype=np.float64)
        if flat.size != num_channels * h * w:
            raise ValueError(
                f"Buffer of {flat.size} values does not fit "
                f"{num_channels} x {h} x {w}")
        img = cls.__new__(cls)
        img._data = flat.reshape(num_channels, h, w).copy()
        return img

    def copy(self):
        img = ImageData.__new__(ImageData)
        img._data = self._data.copy()
        return img

    def get_num_channels(self):
        return self._data.shape[0]

    def get_image_size(self):
        return self._data.shape[1], self._data.shape[2]

    def get_num_pixels(self):
        h, w = self.get_image_size()
        return h * w

    def _check_channel(self, channel):
        if not 0 <= channel < self.get_num_channels():
            raise IndexError(
                f"Channel {channel} out of range ({self.get_num_channels()} channels)")

    def get_pixel_value(self, channel, index):
        self._check_channel(channel)
        if not 0 <= index < self.get_num_pixels():
            raise IndexError(f"Pixel index {index} out of range")
        return float(self._data[channel].flat[index])

    def set_pixel_value(self, channel, index, value):
        self._check_channel(channel)
        if not 0 <= index < self.get_num_pixels():
            raise IndexError(f"Pixel index {index} out of range")
        self._data[channel].flat[index] = value

    def get_channel_image(self, channel):
        """(H, W) view of one channel. Writes go through to the buffer."""
        self._check_channel(channel)
        return self._data[channel]

    def get_mutable_data(self, channel):
        """Flat writable view of one channel."""
        self._check_channel(channel)
        return self._data[channel].reshape(-1)

    def set_channel_image(self, channel, channel_image):
        self._check_channel(channel)
        channel_image = np.asarray(channel_image, dtype=np.float64)
        if channel_image.shape != self.get_image_size():
            raise ValueError(
                f"Channel shape {channel_image.shape} does not match "
                f"image size {self.get_image_size()}")
        self._data[channel] = channel_image

    def transform_channels(self, fn):
        """
        Replaces every channel c with fn(channel_c). fn may change the
        channel size as long as it does so consistently for all channels.
        """
        out = [np.asarray(fn(self._data[c]), dtype=np.float64)
               for c in range(self.get_num_channels())]
        self._data = np.ascontiguousarray(np.stack(out, axis=0))

    def resize_image(self, image_size, interpolation=cv2.INTER_LINEAR):
        h, w = image_size
        if (h, w) == self.get_image_size():
            return
        # cv2.resize expects (width, height)
        self.transform_channels(
            lambda ch: cv2.resize(ch, (w, h), interpolation=interpolation))

    def as_array(self):
        """(H, W) copy for single-channel images, (H, W, C) otherwise."""
        if self.get_num_channels() == 1:
            return self._data[0].copy()
        return np.moveaxis(self._data, 0, 2).copy()

    def __repr__(self):
        h, w = self.get_image_size()
        return f"ImageData({self.get_num_channels()}x{h}x{w})"
