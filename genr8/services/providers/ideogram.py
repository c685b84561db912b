from genr8.services.providers.kie_jobs import KieJobsAdapter


class IdeogramAdapter(KieJobsAdapter):
    model_id = "ideogram"
    media_type = "image"
    api_key_name = "IDEOGRAM_API_KEY"

    def kie_model(self, options: dict) -> str:
        return "ideogram/v3-text-to-image"

    def build_input(self, prompt: str, options: dict) -> dict:
        data = {
            "prompt": prompt,
            "rendering_speed": options.get("rendering_speed", "BALANCED"),
            "style": options.get("style", "AUTO"),
            "expand_prompt": options.get("expand_prompt", True),
            "image_size": options.get("image_size", "square_hd"),
            "num_images": str(options.get("num_images", "1")),
        }
        if options.get("seed") is not None:
            data["seed"] = options["seed"]
        if options.get("negative_prompt"):
            data["negative_prompt"] = options["negative_prompt"]
        return data
