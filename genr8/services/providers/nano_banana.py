from genr8.services.providers.kie_jobs import KieJobsAdapter


class NanoBananaAdapter(KieJobsAdapter):
    model_id = "nano-banan-pro"
    media_type = "image"

    def kie_model(self, options: dict) -> str:
        return "nano-banana-pro"

    def build_input(self, prompt: str, options: dict) -> dict:
        data = {
            "prompt": prompt,
            "aspect_ratio": options.get("aspect_ratio", "1:1"),
            "resolution": options.get("resolution", "1K"),
            "output_format": options.get("output_format", "png"),
        }
        if options.get("image_input"):
            data["image_input"] = list(options["image_input"])
        return data
